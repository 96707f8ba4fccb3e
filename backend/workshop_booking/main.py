"""
Workshop Booking API - Main Application Entry Point

Booking and notification synchronization for children's workshops:
- Catalog-priced bookings with age eligibility
- Occupancy recounted inside every booking transaction
- Live room events over WebSocket, durable Web Push for offline users
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workshop_booking.core.config import get_settings
from workshop_booking.core.logging import setup_logging, get_logger
from workshop_booking.core.metrics import metrics_endpoint
from workshop_booking.api.router import api_router
from workshop_booking.api.routes import ws
from workshop_booking.api.middleware import RequestLoggingMiddleware
from workshop_booking.domain.errors import DomainError, ErrorCode
from workshop_booking.services.cache_service import listing_cache
from workshop_booking.services.live_channel import LiveChannel
from workshop_booking.services.transport_factory import get_push_transport

settings = get_settings()
logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INELIGIBLE_ITEM: 400,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.EDIT_WINDOW_CLOSED: 409,
    ErrorCode.DELIVERY_FAILURE: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    app.state.live_channel = LiveChannel(send_timeout=settings.LIVE_SEND_TIMEOUT_SECONDS)
    app.state.push_transport = get_push_transport(settings)

    if await listing_cache.connect():
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    await listing_cache.close()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Workshop booking with live and push notifications",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(api_router)
app.include_router(ws.router)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(status_code=ERROR_STATUS.get(exc.code, 400), content=exc.to_dict())


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await listing_cache.stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
        "live_connections": request.app.state.live_channel.connection_count,
        "push_enabled": bool(request.app.state.push_transport.public_key),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
