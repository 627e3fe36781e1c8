import uvicorn
from dishka import AsyncContainer
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI

from notifyhub.api.routes import dispatch, maintenance, notifications, preferences
from notifyhub.core.container import create_app_container
from notifyhub.core.correlation import CorrelationMiddleware
from notifyhub.core.dishka_lifespan import lifespan
from notifyhub.core.exceptions import configure_exception_handlers
from notifyhub.core.logging import setup_logger
from notifyhub.settings import Settings, get_settings


def create_app(settings: Settings | None = None, container: AsyncContainer | None = None) -> FastAPI:
    settings = settings or get_settings()
    logger = setup_logger(settings.LOG_LEVEL)

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    setup_dishka(container or create_app_container(settings), app)

    app.add_middleware(CorrelationMiddleware)

    app.include_router(preferences.router, prefix=settings.API_V1_STR)
    app.include_router(maintenance.router, prefix=settings.API_V1_STR)
    app.include_router(notifications.router, prefix=settings.API_V1_STR)
    app.include_router(dispatch.router, prefix=settings.API_V1_STR)
    logger.info("All routers configured")

    configure_exception_handlers(app)
    logger.info("Exception handlers configured")

    return app


if __name__ == "__main__":
    settings = get_settings()
    logger = setup_logger(settings.LOG_LEVEL)
    logger.info(
        "Starting uvicorn server",
        extra={"host": settings.SERVER_HOST, "port": settings.SERVER_PORT},
    )
    uvicorn.run(create_app(settings), host=settings.SERVER_HOST, port=settings.SERVER_PORT)
