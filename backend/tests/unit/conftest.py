import logging
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from dishka import AsyncContainer, make_async_container

from notifyhub.core.database_context import Database
from notifyhub.core.metrics import NotificationMetrics
from notifyhub.core.providers import (
    LoggingProvider,
    MetricsProvider,
    NotificationServicesProvider,
    RepositoryProvider,
    SettingsProvider,
)
from notifyhub.domain.enums import NotificationChannel
from notifyhub.settings import Settings
from tests.helpers.fakes import (
    FakeBoundaryClientProvider,
    FakeDatabaseProvider,
    FakeDeliveryProvider,
    FrozenClock,
    RecordingChannel,
)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def in_app_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def email_channel() -> RecordingChannel:
    return RecordingChannel(NotificationChannel.EMAIL)


def build_unit_container(settings: Settings, clock: FrozenClock, *channels: RecordingChannel) -> AsyncContainer:
    return make_async_container(
        SettingsProvider(),
        LoggingProvider(),
        FakeDatabaseProvider(),
        FakeBoundaryClientProvider(),
        MetricsProvider(),
        RepositoryProvider(),
        NotificationServicesProvider(),
        FakeDeliveryProvider(clock, *channels),
        context={Settings: settings},
    )


@pytest_asyncio.fixture
async def unit_container(
        test_settings: Settings, clock: FrozenClock, in_app_channel: RecordingChannel
) -> AsyncGenerator[AsyncContainer, None]:
    """DI container for unit tests with fake boundary clients.

    Provides:
    - mongomock database, fakeredis, frozen clock, recording channel (boundaries)
    - Real metrics, repositories, services (internal)

    Function scoped so every test starts from an empty database.
    """
    container = build_unit_container(test_settings, clock, in_app_channel)
    yield container
    await container.close()


@pytest_asyncio.fixture
async def two_channel_container(
        test_settings: Settings,
        clock: FrozenClock,
        in_app_channel: RecordingChannel,
        email_channel: RecordingChannel,
) -> AsyncGenerator[AsyncContainer, None]:
    """Same as ``unit_container`` with a recording email channel next to in-app."""
    container = build_unit_container(test_settings, clock, in_app_channel, email_channel)
    yield container
    await container.close()


@pytest_asyncio.fixture
async def database(unit_container: AsyncContainer) -> Database:
    return await unit_container.get(Database)


@pytest.fixture
def notification_metrics(test_settings: Settings) -> NotificationMetrics:
    return NotificationMetrics(test_settings)


@pytest.fixture
def test_logger() -> logging.Logger:
    return logging.getLogger("test.unit")
