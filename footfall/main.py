"""
Main FastAPI application.

Serves the foot traffic area analysis API.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from footfall.core.config import get_settings
from footfall.core.database import create_tables
from footfall.api.v1 import foot_traffic

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Runs on startup and shutdown.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting Footfall area analysis service")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Max concurrency: {settings.max_concurrency}")
    logger.info(f"Analysis cache backend: {settings.analysis_cache_backend}")
    if not settings.foursquare_api_key:
        logger.warning("FOURSQUARE_API_KEY not set; area analysis requests will fail with 503")

    # Durable cache needs its table
    if settings.analysis_cache_backend == "database":
        try:
            create_tables()
            logger.info("Database tables ready")
        except Exception as e:
            logger.error(f"Failed to create tables: {e}")
            raise

    yield

    # Shutdown
    await foot_traffic.reset_analyzer()
    logger.info("Shutting down")


# Create FastAPI app
app = FastAPI(
    title="Footfall",
    description="Foot traffic estimation and area opportunity analysis",
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware (configure as needed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(foot_traffic.router, prefix="/api/v1")


@app.get("/")
def root():
    """Root endpoint with service info."""
    return {
        "service": "Footfall",
        "version": "0.1.0",
        "sources": ["foursquare"],
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """
    Health check endpoint.

    Returns status of the service and, for the database cache backend,
    database connectivity.
    """
    from footfall.core.database import get_engine
    from sqlalchemy import text

    settings = get_settings()
    health_status = {
        "status": "healthy",
        "service": "running",
        "cache_backend": settings.analysis_cache_backend,
        "foursquare": "configured" if settings.foursquare_api_key else "missing_api_key",
    }

    if settings.analysis_cache_backend != "database":
        return health_status

    # Check database connectivity
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        health_status["status"] = "degraded"
        health_status["database"] = f"error: {str(e)}"
        logger.warning(f"Database health check failed: {e}")

    return health_status
