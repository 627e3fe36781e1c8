import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dishka import AsyncContainer
from fastapi import FastAPI

from notifyhub.db.repositories import (
    AuditRepository,
    NotificationRepository,
    PreferenceRepository,
    RateLimitRepository,
    WorkspaceMembershipRepository,
)
from notifyhub.settings import Settings


async def ensure_indexes(container: AsyncContainer) -> None:
    """Create every collection index; safe to repeat on each process start."""
    for repository_type in (
        NotificationRepository,
        PreferenceRepository,
        RateLimitRepository,
        AuditRepository,
        WorkspaceMembershipRepository,
    ):
        repository = await container.get(repository_type)
        await repository.create_indexes()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: indexes on startup, container teardown on shutdown."""
    container: AsyncContainer = app.state.dishka_container
    settings = await container.get(Settings)
    logger = await container.get(logging.Logger)
    logger.info(
        "Starting application with dishka DI",
        extra={
            "project_name": settings.PROJECT_NAME,
            "environment": "test" if settings.TESTING else settings.ENVIRONMENT,
        },
    )

    await ensure_indexes(container)
    logger.info("Database indexes ensured")

    yield

    logger.info("Shutting down application")
    await container.close()
