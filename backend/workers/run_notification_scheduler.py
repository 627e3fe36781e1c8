import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from notifyhub.core.container import create_scheduler_container
from notifyhub.core.dishka_lifespan import ensure_indexes
from notifyhub.core.logging import setup_logger
from notifyhub.services.notification_scheduler import NotificationScheduler
from notifyhub.services.retention_service import NotificationRetentionService
from notifyhub.settings import Settings


def main() -> None:
    """Main entry point for the notification scheduler worker."""
    settings = Settings(override_path="config.scheduler.toml")

    logger = setup_logger(settings.LOG_LEVEL)

    logger.info("Starting notification scheduler worker...")

    async def run() -> None:
        # Create DI container
        container = create_scheduler_container(settings)
        await ensure_indexes(container)

        notification_scheduler = await container.get(NotificationScheduler)
        retention_service = await container.get(NotificationRetentionService)

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            notification_scheduler.process_due,
            trigger="interval",
            seconds=settings.NOTIF_RETRY_INTERVAL_SECONDS,
            id="notification_delivery_sweep",
            max_instances=1,
            misfire_grace_time=60,
        )
        scheduler.add_job(
            retention_service.run_maintenance,
            trigger="interval",
            seconds=settings.NOTIF_MAINTENANCE_INTERVAL_SECONDS,
            id="notification_maintenance",
            max_instances=1,
            misfire_grace_time=300,
        )
        scheduler.start()
        logger.info(
            f"Notification scheduler initialized (APScheduler delivery={settings.NOTIF_RETRY_INTERVAL_SECONDS}s, "
            f"maintenance={settings.NOTIF_MAINTENANCE_INTERVAL_SECONDS}s, worker={notification_scheduler.worker_id})"
        )

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        await stop.wait()
        scheduler.shutdown(wait=False)
        await container.close()
        logger.info("Notification scheduler shutdown complete")

    asyncio.run(run())


if __name__ == "__main__":
    main()
