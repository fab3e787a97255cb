from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import structlog

from app.core.config import settings
from app.core.logging import setup_logging
from app.api.api import api_router
from app.api.v1.schemas.common import HealthCheckResponse
from app.core.middleware import RequestLoggingMiddleware
from app.pricing.service import build_pricing_service, create_http_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    logger = structlog.get_logger()

    logger.info("Starting pricing service", version=settings.APP_VERSION)

    # One client, cache and scheme directory for the whole process
    http_client = create_http_client(settings)
    app.state.pricing_service = build_pricing_service(settings, http_client)

    yield

    # Shutdown
    await http_client.aclose()
    logger.info("Shutting down pricing service")


def create_application() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Market price resolution for personal finance holdings",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    # Add CORS middleware
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=settings.ALLOW_CREDENTIALS,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthCheckResponse)
    async def health_check():
        """Health check endpoint"""
        return HealthCheckResponse(status="healthy", version=settings.APP_VERSION)

    return app


app = create_application()
