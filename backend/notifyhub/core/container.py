from dishka import AsyncContainer, make_async_container
from dishka.integrations.fastapi import FastapiProvider

from notifyhub.core.providers import (
    DatabaseProvider,
    DeliveryChannelProvider,
    HttpClientProvider,
    LoggingProvider,
    MetricsProvider,
    NotificationServicesProvider,
    RedisProvider,
    RepositoryProvider,
    SettingsProvider,
)
from notifyhub.settings import Settings


def create_app_container(settings: Settings) -> AsyncContainer:
    """
    Create the application DI container.
    """
    return make_async_container(
        SettingsProvider(),
        LoggingProvider(),
        DatabaseProvider(),
        RedisProvider(),
        HttpClientProvider(),
        MetricsProvider(),
        RepositoryProvider(),
        DeliveryChannelProvider(),
        NotificationServicesProvider(),
        FastapiProvider(),
        context={Settings: settings},
    )


def create_scheduler_container(settings: Settings) -> AsyncContainer:
    """
    Create a DI container for the notification scheduler worker.
    Same object graph as the API minus the FastAPI request integration.
    """
    return make_async_container(
        SettingsProvider(),
        LoggingProvider(),
        DatabaseProvider(),
        RedisProvider(),
        HttpClientProvider(),
        MetricsProvider(),
        RepositoryProvider(),
        DeliveryChannelProvider(),
        NotificationServicesProvider(),
        context={Settings: settings},
    )
