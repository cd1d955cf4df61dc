"""Alembic environment for the payment order, balance and ledger tables."""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection

from coinpay.core.config import get_settings
from coinpay.db import models  # noqa: F401  registers the tables
from coinpay.infrastructure.database.base import Base
from coinpay.infrastructure.database.session import get_engine

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _configure(**kwargs) -> None:
    url = kwargs.get("url") or get_settings().database_url
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def _run(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def _run_online() -> None:
    async with get_engine().connect() as connection:
        await connection.run_sync(_run)


if context.is_offline_mode():
    # offline SQL is rendered with the sync driver name
    _configure(
        url=get_settings().database_url.replace("+aiosqlite", ""),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()
else:
    asyncio.run(_run_online())
