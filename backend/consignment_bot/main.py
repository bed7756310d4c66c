"""
FastAPI application entry point.

WHAT: Main application setup and wiring
WHY: Initialize all components and routes
HOW: Create FastAPI app, register handlers and routers, manage the service
     context through the lifespan
"""

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from .core.config import settings
from .core.context import ServiceContext
from .utils.logger import setup_logging, get_logger
from .middleware.error_handler import register_exception_handlers
from .models.api_schemas import DispatchResponse
from .api.v1.router import api_router
from .api.v1.endpoints import offers

# Setup logging
setup_logging()
logger = get_logger(__name__)


def create_app(context_factory: Optional[Callable[[], ServiceContext]] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        context_factory: Builds the service context at startup; defaults to
            Discord + Airtable from settings (tests pass fakes)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        WHAT: Startup and shutdown logic
        WHY: Fail fast on bad config, open and close HTTP clients cleanly
        HOW: Async context manager for FastAPI lifespan
        """
        # Startup
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        if context_factory is not None:
            context = context_factory()
        else:
            context = ServiceContext.from_settings(settings)
        await context.startup()
        app.state.context = context
        logger.info("Application startup complete")

        yield

        # Shutdown
        logger.info("Shutting down application")
        await context.shutdown()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan
    )

    # Register exception handlers
    register_exception_handlers(app)

    # Include API router
    app.include_router(api_router)

    # Unversioned dispatch path kept for existing automations
    app.add_api_route(
        "/offers",
        offers.dispatch_offers,
        methods=["POST"],
        response_model=DispatchResponse,
        tags=["offers"]
    )

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """Root endpoint."""
        return f"{settings.APP_NAME} is running."

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "consignment_bot.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG
    )
