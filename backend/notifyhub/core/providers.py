import logging
from typing import AsyncIterator

import httpx
import redis.asyncio as redis
from dishka import Provider, Scope, from_context, provide

from notifyhub.core.clock import Clock, SystemClock
from notifyhub.core.database_context import Database, DatabaseConfig, DBClient, create_client
from notifyhub.core.logging import setup_logger
from notifyhub.core.metrics import NotificationMetrics
from notifyhub.db.repositories import (
    AuditRepository,
    NotificationRepository,
    PreferenceRepository,
    RateLimitRepository,
    WorkspaceMembershipRepository,
)
from notifyhub.services.access_policy import WorkspaceAccessPolicy
from notifyhub.services.delivery import DeliveryChannel, EmailRelayChannel, InAppPushChannel
from notifyhub.services.digest_service import NotificationDigestService
from notifyhub.services.delivery_state_machine import DeliveryStateMachine
from notifyhub.services.notification_preferences_service import NotificationPreferencesService
from notifyhub.services.notification_query_service import NotificationQueryService
from notifyhub.services.notification_scheduler import NotificationScheduler
from notifyhub.services.notification_service import NotificationService
from notifyhub.services.preference_resolver import PreferenceResolver
from notifyhub.services.rate_limit_service import WorkspaceRateLimiter
from notifyhub.services.retention_service import NotificationRetentionService
from notifyhub.settings import Settings


class SettingsProvider(Provider):
    """Settings come from the container context so each process picks its own TOML layers."""

    scope = Scope.APP

    settings = from_context(provides=Settings, scope=Scope.APP)


class LoggingProvider(Provider):
    scope = Scope.APP

    @provide
    def get_logger(self, settings: Settings) -> logging.Logger:
        return setup_logger(settings.LOG_LEVEL)


class DatabaseProvider(Provider):
    scope = Scope.APP

    @provide
    async def get_mongo_client(self, settings: Settings, logger: logging.Logger) -> AsyncIterator[DBClient]:
        config = DatabaseConfig(
            mongodb_url=settings.MONGODB_URL,
            db_name=settings.DATABASE_NAME,
            server_selection_timeout_ms=5000,
            connect_timeout_ms=5000,
            max_pool_size=50,
            min_pool_size=10,
        )
        client = create_client(config)
        logger.info(f"MongoDB client created for database {settings.DATABASE_NAME}")
        yield client
        await client.close()

    @provide
    def get_database(self, client: DBClient, settings: Settings) -> Database:
        return client.get_database(settings.DATABASE_NAME)


class RedisProvider(Provider):
    scope = Scope.APP

    @provide
    async def get_redis_client(self, settings: Settings, logger: logging.Logger) -> AsyncIterator[redis.Redis]:
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD,
            ssl=settings.REDIS_SSL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            decode_responses=settings.REDIS_DECODE_RESPONSES,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        # Test connection
        await client.ping()
        logger.info(f"Redis connected: {settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}")
        yield client
        await client.aclose()


class HttpClientProvider(Provider):
    scope = Scope.APP

    @provide
    async def get_http_client(self, settings: Settings) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(timeout=settings.NOTIF_DELIVERY_TIMEOUT_SECONDS) as client:
            yield client


class MetricsProvider(Provider):
    scope = Scope.APP

    @provide
    def get_notification_metrics(self, settings: Settings) -> NotificationMetrics:
        return NotificationMetrics(settings)


class RepositoryProvider(Provider):
    scope = Scope.APP

    @provide
    def get_notification_repository(self, database: Database) -> NotificationRepository:
        return NotificationRepository(database)

    @provide
    def get_preference_repository(self, database: Database) -> PreferenceRepository:
        return PreferenceRepository(database)

    @provide
    def get_rate_limit_repository(self, database: Database) -> RateLimitRepository:
        return RateLimitRepository(database)

    @provide
    def get_audit_repository(self, database: Database) -> AuditRepository:
        return AuditRepository(database)

    @provide
    def get_membership_repository(self, database: Database) -> WorkspaceMembershipRepository:
        return WorkspaceMembershipRepository(database)


class DeliveryChannelProvider(Provider):
    scope = Scope.APP

    @provide
    def get_delivery_channels(
            self,
            settings: Settings,
            redis_client: redis.Redis,
            http_client: httpx.AsyncClient,
            logger: logging.Logger,
    ) -> list[DeliveryChannel]:
        channels: list[DeliveryChannel] = [InAppPushChannel(redis_client, settings.NOTIF_PUSH_CHANNEL_PREFIX)]
        if settings.NOTIF_EMAIL_RELAY_URL:
            channels.append(EmailRelayChannel(http_client, settings.NOTIF_EMAIL_RELAY_URL))
        else:
            logger.info("NOTIF_EMAIL_RELAY_URL not set; email delivery disabled")
        return channels


class NotificationServicesProvider(Provider):
    scope = Scope.APP

    @provide
    def get_clock(self) -> Clock:
        return SystemClock()

    @provide
    def get_access_policy(
            self, membership_repository: WorkspaceMembershipRepository, logger: logging.Logger
    ) -> WorkspaceAccessPolicy:
        return WorkspaceAccessPolicy(membership_repository, logger)

    @provide
    def get_preference_resolver(
            self,
            preference_repository: PreferenceRepository,
            clock: Clock,
            settings: Settings,
            logger: logging.Logger,
    ) -> PreferenceResolver:
        return PreferenceResolver(preference_repository, clock, settings, logger)

    @provide
    def get_rate_limiter(
            self,
            rate_limit_repository: RateLimitRepository,
            clock: Clock,
            settings: Settings,
            logger: logging.Logger,
    ) -> WorkspaceRateLimiter:
        return WorkspaceRateLimiter(rate_limit_repository, clock, settings, logger)

    @provide
    def get_state_machine(
            self,
            notification_repository: NotificationRepository,
            audit_repository: AuditRepository,
            clock: Clock,
            settings: Settings,
            metrics: NotificationMetrics,
            logger: logging.Logger,
    ) -> DeliveryStateMachine:
        return DeliveryStateMachine(notification_repository, audit_repository, clock, settings, metrics, logger)

    @provide
    def get_notification_service(
            self,
            notification_repository: NotificationRepository,
            audit_repository: AuditRepository,
            access_policy: WorkspaceAccessPolicy,
            preference_resolver: PreferenceResolver,
            rate_limiter: WorkspaceRateLimiter,
            state_machine: DeliveryStateMachine,
            clock: Clock,
            settings: Settings,
            metrics: NotificationMetrics,
            logger: logging.Logger,
    ) -> NotificationService:
        return NotificationService(
            notification_repository=notification_repository,
            audit_repository=audit_repository,
            access_policy=access_policy,
            preference_resolver=preference_resolver,
            rate_limiter=rate_limiter,
            state_machine=state_machine,
            clock=clock,
            settings=settings,
            metrics=metrics,
            logger=logger,
        )

    @provide
    def get_query_service(
            self,
            notification_repository: NotificationRepository,
            access_policy: WorkspaceAccessPolicy,
            settings: Settings,
    ) -> NotificationQueryService:
        return NotificationQueryService(notification_repository, access_policy, settings)

    @provide
    def get_preferences_service(
            self,
            preference_repository: PreferenceRepository,
            preference_resolver: PreferenceResolver,
            access_policy: WorkspaceAccessPolicy,
            clock: Clock,
            logger: logging.Logger,
    ) -> NotificationPreferencesService:
        return NotificationPreferencesService(preference_repository, preference_resolver, access_policy, clock, logger)

    @provide
    def get_scheduler(
            self,
            notification_repository: NotificationRepository,
            state_machine: DeliveryStateMachine,
            preference_resolver: PreferenceResolver,
            channels: list[DeliveryChannel],
            clock: Clock,
            settings: Settings,
            metrics: NotificationMetrics,
            logger: logging.Logger,
    ) -> NotificationScheduler:
        return NotificationScheduler(
            notification_repository=notification_repository,
            state_machine=state_machine,
            preference_resolver=preference_resolver,
            channels=channels,
            clock=clock,
            settings=settings,
            metrics=metrics,
            logger=logger,
        )

    @provide
    def get_digest_service(
            self,
            preference_repository: PreferenceRepository,
            notification_repository: NotificationRepository,
            channels: list[DeliveryChannel],
            clock: Clock,
            settings: Settings,
            metrics: NotificationMetrics,
            logger: logging.Logger,
    ) -> NotificationDigestService:
        return NotificationDigestService(
            preference_repository=preference_repository,
            notification_repository=notification_repository,
            channels=channels,
            clock=clock,
            settings=settings,
            metrics=metrics,
            logger=logger,
        )

    @provide
    def get_retention_service(
            self,
            notification_repository: NotificationRepository,
            rate_limit_repository: RateLimitRepository,
            audit_repository: AuditRepository,
            scheduler: NotificationScheduler,
            digest_service: NotificationDigestService,
            clock: Clock,
            settings: Settings,
            metrics: NotificationMetrics,
            logger: logging.Logger,
    ) -> NotificationRetentionService:
        return NotificationRetentionService(
            notification_repository=notification_repository,
            rate_limit_repository=rate_limit_repository,
            audit_repository=audit_repository,
            scheduler=scheduler,
            digest_service=digest_service,
            clock=clock,
            settings=settings,
            metrics=metrics,
            logger=logger,
        )
