"""
Reservation Microservice
Reservation lifecycle engine, pharmacy response timeout sweeper and
notification mailbox for medicine reservations.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import asyncio
import subprocess
import os

from shared.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from app.core_settings import get_settings
from app.api.errors import register_exception_handlers
from app.api.routes import router as reservations_router, cron_router
from app.api.inventory_routes import router as inventory_router
from app.api.notification_routes import router as notifications_router
from app.application.bootstrap import ensure_admin_exists
from app.infrastructure.db import SessionLocal, engine, init_models
from app.infrastructure.scheduler import default_sweeper, run_sweeper, sweeper_probe

settings = get_settings()

SERVICE_NAME = "reservation-service"
SERVICE_VERSION = settings.SERVICE_VERSION
SERVICE_DESCRIPTION = "Medicine reservation lifecycle microservice"

setup_logging(
    service_name=SERVICE_NAME,
    level=settings.LOG_LEVEL,
    version=SERVICE_VERSION,
    environment=settings.ENVIRONMENT,
)

logger = get_logger(__name__)


def _run_migrations() -> None:
    logger.info("Running database migrations")
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=os.path.join(os.path.dirname(__file__), ".."),
        capture_output=True,
        text=True,
        check=False
    )
    if result.returncode != 0:
        logger.warning(f"Migration output: {result.stderr}")
    else:
        logger.info("Database migrations completed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    logger.info(f"Starting {SERVICE_NAME} version {SERVICE_VERSION}")

    if settings.RUN_MIGRATIONS:
        try:
            _run_migrations()
        except OSError as e:
            logger.error(f"Migration error: {e}")

    try:
        init_models()
        logger.info("Database models initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database models: {e}")
        raise

    ensure_admin_exists(SessionLocal, settings.ADMIN_EMAIL, settings.ADMIN_NAME)

    shutdown_event = asyncio.Event()
    sweeper_task = None
    if settings.SWEEPER_ENABLED:
        sweeper_task = asyncio.create_task(
            run_sweeper(default_sweeper, settings.SWEEP_INTERVAL_SECONDS, shutdown_event)
        )

    logger.info(f"{SERVICE_NAME} started successfully")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    shutdown_event.set()
    if sweeper_task is not None:
        try:
            await asyncio.wait_for(sweeper_task, timeout=settings.SWEEP_INTERVAL_SECONDS)
        except asyncio.TimeoutError:
            sweeper_task.cancel()


app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)

health_service = ServiceHealth(
    SERVICE_NAME,
    SERVICE_VERSION,
    engine,
    probes={
        "scheduler:sweeper": lambda: sweeper_probe(default_sweeper, settings.SWEEP_INTERVAL_SECONDS),
    } if settings.SWEEPER_ENABLED else None,
    metrics=lambda: {"sweeper": default_sweeper.stats()},
)
app.include_router(health_service.create_health_router())

app.include_router(reservations_router)
app.include_router(inventory_router)
app.include_router(notifications_router)
app.include_router(cron_router)


@app.get("/")
async def root():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "docs": "/api/docs"
    }


@app.get("/info")
async def info():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": SERVICE_DESCRIPTION,
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "health": "/health",
            "ready": "/health/ready",
            "live": "/health/live",
            "metrics": "/metrics",
            "docs": "/api/docs",
            "sweep": "/cron/check-timeouts"
        }
    }
