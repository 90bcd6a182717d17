"""
FlightGate API - Entry Point

This module initializes the FastAPI application with strict configuration
validation and a spatial store connectivity check on startup.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import load_config, ConfigurationError
from .clients.airspace_api import AirspaceApiStore
from .processing.decision_pipeline import FlightDecisionPipeline
from .api.routes import router, set_pipeline

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown."""
    # Startup
    logger.info("=" * 60)
    logger.info("FLIGHTGATE API - STARTING")
    logger.info("=" * 60)

    try:
        # Load configuration (will fail fast if env vars missing)
        config = load_config()
        logger.info("Configuration loaded successfully")

        settings = config.decision
        logger.info(f"  corridor width: {settings.corridor_width_m} m")
        logger.info(f"  wind limit: {settings.wind_limit_kts} kt")
        logger.info(f"  planning grid: {settings.grid_steps} steps per axis")

        store = AirspaceApiStore(
            config.airspace_api_url,
            timeout=config.airspace_api_timeout or 30.0,
        )
        pipeline = FlightDecisionPipeline(store, settings)
        set_pipeline(pipeline)
        logger.info("Pipeline initialized")

        # Test store connectivity
        logger.info("Testing spatial store connectivity...")
        if await store.test_connection():
            logger.info(f"  airspace store: OK ({config.airspace_api_url})")
        else:
            logger.error(f"  airspace store: FAILED ({config.airspace_api_url})")
            # Don't exit - decisions will report the store as unavailable

        logger.info("=" * 60)
        logger.info(f"Server ready on {config.backend_host}:{config.backend_port}")
        logger.info("=" * 60)

        # Store config and pipeline in app state
        app.state.config = config
        app.state.pipeline = pipeline

        yield

    except ConfigurationError as e:
        logger.error("=" * 60)
        logger.error("CONFIGURATION ERROR")
        logger.error("=" * 60)
        logger.error(str(e))
        logger.error("")
        logger.error("Please ensure all required environment variables are set.")
        logger.error("=" * 60)
        sys.exit(1)

    # Shutdown
    logger.info("Shutting down...")
    if hasattr(app.state, "pipeline"):
        await app.state.pipeline.close()
    set_pipeline(None)
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    # Load config early to get CORS origins (will fail if config is invalid)
    try:
        config = load_config()
    except ConfigurationError:
        # Let lifespan handle the error with better messaging
        config = None

    app = FastAPI(
        title="FlightGate API",
        description="Drone flight conflict evaluation and alternative-route planning",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins if config else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Load config to get port
    config = load_config()

    uvicorn.run(
        "flightgate.main:app",
        host=config.backend_host,
        port=config.backend_port,
        reload=False,
    )
