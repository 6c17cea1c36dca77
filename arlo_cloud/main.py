"""FastAPI debug surface for the Arlo cloud client.

Logs in once at startup and exposes devices and hub event streams over HTTP.
Run with ``python -m arlo_cloud.main`` or ``uvicorn arlo_cloud.main:app``.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from arlo_cloud import __version__
from arlo_cloud.api.v1 import api_router
from arlo_cloud.core.config import settings
from arlo_cloud.core.exceptions import ArloBaseException, NotFoundError
from arlo_cloud.services.client import ArloClient

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_client() -> ArloClient:
    """Create the client from settings (ConfigurationError if incomplete)."""
    return ArloClient(settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Arlo cloud debug API")
    logger.info(f"Debug Mode: {settings.DEBUG}")

    client = build_client()
    await client.login()
    app.state.client = client
    app.state.hubs = {}

    yield

    # Shutdown
    logger.info("Shutting down Arlo cloud debug API")

    for hub_id, hub in app.state.hubs.items():
        try:
            await hub.close()
        except ArloBaseException as e:
            logger.warning(f"Failed to close event stream for hub {hub_id}: {e.message}")

    await client.close()


# Create FastAPI app
app = FastAPI(
    title="Arlo Cloud Debug API",
    description="Debug surface over the Arlo cloud client: devices and hub event streams",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Include API router
app.include_router(api_router)


def _error_response(status_code: int, exc: ArloBaseException) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.message,
            "details": exc.details
        }
    )


# Exception handlers
@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request, exc: NotFoundError):
    """Handle lookups that matched nothing."""
    logger.info(f"Not found: {exc.message}")
    return _error_response(404, exc)


@app.exception_handler(ArloBaseException)
async def arlo_exception_handler(request, exc: ArloBaseException):
    """Handle custom Arlo exceptions."""
    logger.error(f"Arlo error: {exc.message}", extra={"details": exc.details})
    return _error_response(400, exc)


# Health check endpoint
@app.get("/api/v1/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns session and event stream status (non-sensitive).
    """
    client: ArloClient = app.state.client

    return {
        "status": "healthy",
        "service": "arlo-cloud",
        "version": __version__,
        "authenticated": client.is_authenticated,
        "hubs": {
            hub_id: hub.state.value
            for hub_id, hub in app.state.hubs.items()
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("arlo_cloud.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
