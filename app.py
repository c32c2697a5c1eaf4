"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and prepares the
database before the first request.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from spacebook.controllers.booking_controller import router as booking_router
from spacebook.controllers.space_controller import router as space_router
from spacebook.repository.data_repository import DataRepository
from spacebook.services.auth_service import AuthService
from spacebook.services.booking_service import BookingService
from spacebook.services.space_service import SpaceLockTable, SpaceService
from spacebook.utils.config import Settings, get_settings
from spacebook.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service shares one repository and one per-space lock table, so
    bookings and space deletion serialize on the same locks.
    """
    settings = settings or get_settings()

    repository = DataRepository(settings)
    locks = SpaceLockTable()
    booking_service = BookingService(repository=repository, settings=settings, locks=locks)
    space_service = SpaceService(repository=repository, settings=settings, locks=locks)
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(space_router)
    app.include_router(booking_router)

    app.state.settings = settings
    app.state.repository = repository
    app.state.booking_service = booking_service
    app.state.space_service = space_service
    app.state.auth_service = auth_service

    return app


def _startup(app: FastAPI) -> None:
    """Idempotent: schema creation and seeding both skip existing data."""
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_default_spaces:
        logger.info("Startup: seeding default spaces (skipped if Spaces table not empty)")
        repository.seed_default_spaces()

    logger.info("Startup complete | system ready")


# Module-level app object for uvicorn
app = create_app()
