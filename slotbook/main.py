# slotbook/main.py
"""ASGI application for the booking scheduler."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import FastAPI

from . import __version__
from .core.config import settings
from .database import init_db
from .errors import register_error_handlers
from .routes import bookings, health, providers

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting slotbook %s (%s)", __version__, settings.environment)
    if not settings.is_production_database():
        init_db()
    yield
    logger.info("Shutting down slotbook")


def create_app() -> FastAPI:
    app = FastAPI(
        title="slotbook",
        description="Availability-constrained booking scheduler",
        version=__version__,
        lifespan=app_lifespan,
    )
    register_error_handlers(app)
    app.include_router(health.router)
    app.include_router(bookings.router)
    app.include_router(providers.router)
    return app


app = create_app()
