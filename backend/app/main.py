"""
Offroad Club Booking API - Main Application Entry Point

Backend for the club's Telegram mini app:
- Members browse trips and register a crew (driver, passengers, children)
- Priced trips are paid through YooMoney quickpay
- A signed YooMoney notification webhook confirms payments
- Organizers manage events and participants behind JWT auth
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.logging import setup_logging, get_logger
from app.core.metrics import metrics_endpoint
from app.api.router import api_router
from app.api.middleware import RequestLoggingMiddleware
from app.db.session import get_session_factory, dispose_engine
from app.services.auth_service import ensure_admin

settings = get_settings()


async def bootstrap_admin(logger) -> None:
    factory = get_session_factory()
    if factory is None:
        logger.warning("admin_bootstrap_skipped", reason="database_not_configured")
        return

    async with factory() as session:
        await ensure_admin(session, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
        await session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    # The webhook answers 500 to every notification without these
    if not settings.YOOMONEY_SECRET:
        logger.error("yoomoney_secret_missing")
    if not settings.YOOMONEY_RECEIVER:
        logger.warning("yoomoney_receiver_missing", message="Priced events cannot be booked")

    if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
        await bootstrap_admin(logger)

    yield

    await dispose_engine()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event booking and YooMoney payment confirmation for an offroad club",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# The mini app is served from a different origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "payments_configured": bool(settings.YOOMONEY_SECRET and settings.YOOMONEY_RECEIVER),
        "database_configured": bool(settings.DATABASE_URL),
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
