"""
Room Reservations API - Main Application Entry Point

A reservation consistency engine for a small hotel:
- Per-room serialized mutations, no double booking under concurrency
- Booking lifecycle with room occupancy derived from checked-in bookings
- Commit-then-publish audit trail of every Room, Guest and Booking change
- Read-only occupancy, performance and financial reports
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reservations.core.config import get_settings
from reservations.core.errors import ReservationError, is_validation_error
from reservations.core.logging import setup_logging, get_logger
from reservations.core.metrics import metrics_endpoint
from reservations.api.router import api_router
from reservations.api.middleware import RequestLoggingMiddleware
from reservations.db.session import SessionLocal
from reservations.schemas.common import ErrorDetail, ErrorResponse
from reservations.services.audit_service import AuditPropagator

settings = get_settings()
logger = get_logger(__name__)

ERROR_STATUS = {
    "NotFound": status.HTTP_404_NOT_FOUND,
    "InvalidRange": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "CapacityExceeded": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "RoomUnavailable": status.HTTP_409_CONFLICT,
    "InvalidTransition": status.HTTP_409_CONFLICT,
    "Conflict": status.HTTP_409_CONFLICT,
    "Unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
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

    propagator = AuditPropagator(SessionLocal, settings.AUDIT_MODE, settings.AUDIT_QUEUE_MAXSIZE)
    app.state.audit_propagator = propagator
    await propagator.start()

    yield

    await propagator.stop()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Room reservation API with concurrency-safe bookings and an audit trail",
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


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    if is_validation_error(exc):
        logger.info("request_rejected", **exc.to_dict())
    else:
        logger.error("request_unavailable", **exc.to_dict())
    body = ErrorResponse(error=ErrorDetail(**exc.to_dict()))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint for Docker and load balancers."""
    propagator = getattr(request.app.state, "audit_propagator", None)
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "audit": {
            "mode": propagator.mode if propagator else None,
            "running": propagator.running if propagator else False,
            "queued": propagator.queue.qsize() if propagator else 0,
        },
    }


@app.get("/metrics", tags=["Health"])
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
