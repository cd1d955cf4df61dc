"""
Initialise the database
Creates the tables for a development setup and reports the payment policy in use
"""
import asyncio

from coinpay.core.config import get_settings
from coinpay.db.session import get_engine, init_db


async def initialise():
    """Create tables and print the active policy"""
    settings = get_settings()
    await init_db()
    await get_engine().dispose()

    print("=" * 50)
    print("Database ready: %s" % settings.database_url)
    print("=" * 50)
    print("On-chain destination: %s" % (settings.payments.destination_address or "<not configured>"))
    print("Static rate: %s %s per %s" % (settings.oracle.static_rate, settings.payments.fiat_currency, settings.payments.token_symbol))
    print(
        "Expiry: %s min on-chain, %s min gateway"
        % (settings.payments.onchain_expiry_minutes, settings.payments.gateway_expiry_minutes)
    )
    print("=" * 50)


if __name__ == "__main__":
    asyncio.run(initialise())
