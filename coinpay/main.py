import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coinpay import __version__
from coinpay.api import create_api_router
from coinpay.core.config import Settings, get_settings
from coinpay.core.container import ApplicationContainer
from coinpay.core.logging_config import configure_logging
from coinpay.db.session import init_db
from coinpay.interfaces.http.routers import websocket as websocket_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ApplicationContainer = app.state.container
    await init_db(container.engine)
    await container.orders.resume()
    sweeper = asyncio.create_task(
        container.orders.run_expiry_sweeper(container.settings.payments.expiry_sweep_seconds),
        name="expiry-sweeper",
    )
    logger.info("Payment service started (%s)", container.settings.environment)
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await container.close()
        logger.info("Payment service stopped")


def create_app(settings: Optional[Settings] = None, container: Optional[ApplicationContainer] = None) -> FastAPI:
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings)
    container = container or ApplicationContainer.from_settings(settings)

    app = FastAPI(
        title=settings.project_name,
        description="Coin purchases settled on-chain or through a fiat gateway",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))
    app.include_router(websocket_router.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
