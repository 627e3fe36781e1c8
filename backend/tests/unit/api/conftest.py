from typing import AsyncGenerator

import pytest_asyncio
from dishka import AsyncContainer, make_async_container
from dishka.integrations.fastapi import FastapiProvider
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from notifyhub.core.database_context import Database
from notifyhub.core.providers import (
    LoggingProvider,
    MetricsProvider,
    NotificationServicesProvider,
    RepositoryProvider,
    SettingsProvider,
)
from notifyhub.main import create_app
from notifyhub.settings import Settings
from tests.helpers.fakes import (
    FakeBoundaryClientProvider,
    FakeDatabaseProvider,
    FakeDeliveryProvider,
    FrozenClock,
    RecordingChannel,
)


@pytest_asyncio.fixture
async def api_container(
        test_settings: Settings, clock: FrozenClock, in_app_channel: RecordingChannel
) -> AsyncGenerator[AsyncContainer, None]:
    container = make_async_container(
        SettingsProvider(),
        LoggingProvider(),
        FakeDatabaseProvider(),
        FakeBoundaryClientProvider(),
        MetricsProvider(),
        RepositoryProvider(),
        NotificationServicesProvider(),
        FakeDeliveryProvider(clock, in_app_channel),
        FastapiProvider(),
        context={Settings: test_settings},
    )
    yield container
    await container.close()


@pytest_asyncio.fixture
async def app(test_settings: Settings, api_container: AsyncContainer) -> FastAPI:
    return create_app(test_settings, api_container)


@pytest_asyncio.fixture
async def api_database(api_container: AsyncContainer) -> Database:
    return await api_container.get(Database)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
