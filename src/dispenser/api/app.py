"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from dispenser import __version__
from dispenser.config import get_settings
from dispenser.services.dispenser import TokenDispenser
from dispenser.services.keepalive import SelfPinger

logger = logging.getLogger(__name__)


def create_app(dispenser: Optional[TokenDispenser] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        dispenser: Prebuilt service object; built from settings at startup if None
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup: a bad phrase or unreachable endpoint aborts here
        owned = dispenser is None
        app.state.dispenser = dispenser or await TokenDispenser.from_settings(settings)

        pinger = None
        if settings.render_url:
            pinger = SelfPinger(settings.render_url, interval=settings.self_ping_interval)
            pinger.start()

        logger.info(
            f"Server ready on http://{settings.host}:{settings.port}, "
            f"sending from {app.state.dispenser.address}"
        )

        yield

        # Shutdown
        if pinger:
            await pinger.stop()
        if owned:
            await app.state.dispenser.close()

    app = FastAPI(
        title="Token Dispenser API",
        description="Custodial ERC-20 disbursement API",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # Tests inject the service without running the lifespan
    app.state.dispenser = dispenser

    # Register routes
    from dispenser.api.routes import health, wallet

    app.include_router(health.router, tags=["Health"])
    app.include_router(wallet.router, tags=["Wallet"])

    return app
