"""Token Prices FastAPI Application.

Serves cached SuperToken prices at /v1/{network}/{token}. Prices are
refreshed in the background from the Superfluid subgraphs and CoinGecko.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .routers import health, prices
from .services.config import ConfigService, ConfigValidationException, Settings
from .services.logging_service import configure_logging, log_requests
from .services.price_cache import PriceCache
from .services.refresher import build_refresher

logger = logging.getLogger(__name__)


def load_settings_or_exit() -> Settings:
    """Load settings; the service cannot start without them."""
    try:
        return ConfigService().load_settings()
    except ConfigValidationException as e:
        print(f"FATAL: {e}")
        print("Server cannot start with invalid configuration.")
        sys.exit(1)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Resolved settings. If None, they are loaded at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        resolved = settings or load_settings_or_exit()
        configure_logging(resolved.log_level, resolved.log_format)
        if resolved.debug:
            logger.debug("Debug logging enabled")

        refresher = build_refresher(resolved, app.state.price_cache)
        app.state.refresher = refresher
        await refresher.start()
        logger.info(f"Token Prices API listening on port {resolved.port}")

        yield

        await refresher.stop()
        app.state.refresher = None
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Token Prices API",
        description="Cached SuperToken prices per network",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.price_cache = PriceCache()
    app.state.refresher = None

    app.middleware("http")(log_requests)

    app.include_router(health.router, tags=["Health"])
    app.include_router(prices.router, prefix="/v1", tags=["Prices"])

    return app


app = create_app()
