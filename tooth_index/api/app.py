"""
FastAPI application for the tooth-index read API.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from tooth_index import __version__
from tooth_index.api import search, teeth
from tooth_index.api.responses import error_response
from tooth_index.core.engine import ToothIndexEngine
from tooth_index.core.interfaces import AppConfig
from tooth_index.fetcher.base import HttpSourceClient
from tooth_index.index.storage import PackageIndex


logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    index: Optional[PackageIndex] = None,
    source_client: Optional[HttpSourceClient] = None
) -> FastAPI:
    """
    Create the read API application.

    Args:
        config: Application configuration. If None, default configuration is used.
        index: Package index to serve. If None, one is created from the configuration.
        source_client: Upstream client for the tooth route. If None, one is
            created from the fetcher configuration.

    Returns:
        Configured FastAPI application.
    """
    config = config or AppConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.source_client.close()
        app.state.engine.close()
        logger.info("Read API stopped")

    app = FastAPI(
        title="tooth-index",
        version=__version__,
        description="Search and metadata API for Minecraft Bedrock teeth.",
        lifespan=lifespan,
    )

    app.state.engine = ToothIndexEngine(config, index)
    app.state.source_client = source_client or HttpSourceClient(config.fetcher)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        return error_response(400, f"Invalid parameter - {errors}")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(search.router)
    app.include_router(teeth.router, prefix="/teeth")

    return app
