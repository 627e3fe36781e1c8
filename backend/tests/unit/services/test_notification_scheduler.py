import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from dishka import AsyncContainer

from notifyhub.core.database_context import Database
from notifyhub.db.repositories import AuditRepository, NotificationRepository, PreferenceRepository
from notifyhub.domain.enums import (
    AuditAction,
    CollectionNames,
    DeliveryStatus,
    EmailDigestFrequency,
    NotificationPriority,
)
from notifyhub.domain.notification import DomainNotification
from notifyhub.services.delivery_state_machine import DeliveryStateMachine
from notifyhub.services.notification_scheduler import NotificationScheduler
from tests.helpers.fakes import FrozenClock, RecordingChannel

pytestmark = pytest.mark.unit


async def seed(
        container: AsyncContainer,
        clock: FrozenClock,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        **overrides: object,
) -> DomainNotification:
    repo = await container.get(NotificationRepository)
    notification = DomainNotification(
        user_id="u1", workspace_id="ws1", event_type="task_assigned", title="t",
        created_at=clock.now(), priority=priority, **overrides,  # type: ignore[arg-type]
    )
    await repo.insert_notification(notification)
    return notification


@pytest.mark.asyncio
async def test_sweep_delivers_due_notifications(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    repo = await unit_container.get(NotificationRepository)
    n = await seed(unit_container, clock)

    result = await scheduler.process_due()

    assert (result.claimed, result.delivered) == (1, 1)
    assert in_app_channel.sent_ids == [n.notification_id]
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.DELIVERED
    assert stored.claimed_by is None

    # Nothing left to do
    assert (await scheduler.process_due()).claimed == 0


@pytest.mark.asyncio
async def test_claims_most_urgent_first_then_oldest(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    old_low = await seed(unit_container, clock, NotificationPriority.LOW)
    clock.advance(seconds=1)
    old_normal = await seed(unit_container, clock, NotificationPriority.NORMAL)
    clock.advance(seconds=1)
    urgent = await seed(unit_container, clock, NotificationPriority.URGENT)
    clock.advance(seconds=1)
    newer_normal = await seed(unit_container, clock, NotificationPriority.NORMAL)

    await scheduler.process_due()

    assert in_app_channel.sent_ids == [
        urgent.notification_id, old_normal.notification_id, newer_normal.notification_id, old_low.notification_id,
    ]


@pytest.mark.asyncio
async def test_batch_size_bounds_one_sweep(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    for _ in range(5):
        await seed(unit_container, clock)

    assert (await scheduler.process_due(batch_size=2)).claimed == 2
    assert (await scheduler.process_due(batch_size=10)).claimed == 3
    assert len(in_app_channel.sent) == 5


@pytest.mark.asyncio
async def test_failed_attempt_waits_for_backoff_then_retries(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    repo = await unit_container.get(NotificationRepository)
    n = await seed(unit_container, clock)
    in_app_channel.fail_next()

    first = await scheduler.process_due()
    assert (first.claimed, first.failed) == (1, 1)
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.RETRYING
    assert stored.next_retry_at == clock.now() + timedelta(seconds=2)
    assert stored.last_error is not None and "relay unavailable" in stored.last_error

    # Not due yet
    assert (await scheduler.process_due()).claimed == 0

    clock.advance(seconds=2)
    retry = await scheduler.process_due()
    assert retry.delivered == 1
    assert in_app_channel.sent_ids == [n.notification_id]


@pytest.mark.asyncio
async def test_notification_is_never_attempted_more_than_max_attempts(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    repo = await unit_container.get(NotificationRepository)
    n = await seed(unit_container, clock)
    in_app_channel.fail_always()

    exhausted = 0
    for _ in range(10):
        result = await scheduler.process_due()
        exhausted += result.exhausted
        clock.advance(seconds=1024)

    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.FAILED
    assert stored.retry_count == 5
    assert exhausted == 1
    assert in_app_channel.sent == []


@pytest.mark.asyncio
async def test_slow_channel_times_out_and_counts_as_failure(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    repo = await unit_container.get(NotificationRepository)
    n = await seed(unit_container, clock)
    in_app_channel.delay = 5.0  # timeout in config.test.toml is 1s

    result = await scheduler.process_due()

    assert result.failed == 1
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.RETRYING
    assert stored.last_error == "in_app: TimeoutError"


@pytest.mark.asyncio
async def test_quiet_hours_defer_without_consuming_attempts(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    repo = await unit_container.get(NotificationRepository)
    prefs = await unit_container.get(PreferenceRepository)
    audit = await unit_container.get(AuditRepository)

    clock.set(datetime(2025, 3, 10, 23, 0, tzinfo=UTC))
    await prefs.get_or_create("u1", "ws1", clock.now())
    await prefs.update_preferences(
        "u1", "ws1",
        {"quiet_hours_enabled": True, "quiet_hours_start": "22:00", "quiet_hours_end": "08:00"},
        clock.now(),
    )
    quiet = await seed(unit_container, clock, NotificationPriority.NORMAL)
    loud = await seed(unit_container, clock, NotificationPriority.HIGH)

    result = await scheduler.process_due()

    assert result.deferred == 1
    assert in_app_channel.sent_ids == [loud.notification_id]
    stored = await repo.get_notification(quiet.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.CREATED
    assert stored.retry_count == 0
    assert stored.next_retry_at == datetime(2025, 3, 11, 8, 0, tzinfo=UTC)
    assert AuditAction.DEFERRED in [e.action for e in await audit.list_for_notification(quiet.notification_id)]

    clock.set(datetime(2025, 3, 11, 8, 0, tzinfo=UTC))
    await scheduler.process_due()
    assert in_app_channel.sent_ids == [loud.notification_id, quiet.notification_id]


@pytest.mark.asyncio
async def test_expired_and_leased_rows_are_not_claimed(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    await seed(unit_container, clock, expires_at=clock.now() - timedelta(seconds=1))
    leased = await seed(
        unit_container, clock, claimed_by="other-worker", claimed_until=clock.now() + timedelta(minutes=5)
    )

    assert (await scheduler.process_due()).claimed == 0

    # An abandoned lease becomes claimable once it runs out
    clock.advance(minutes=5)
    await scheduler.process_due()
    assert in_app_channel.sent_ids == [leased.notification_id]


@pytest.mark.asyncio
async def test_concurrent_sweeps_deliver_each_notification_once(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    first = await unit_container.get(NotificationScheduler)
    second = NotificationScheduler(
        notification_repository=first.repository,
        state_machine=first.state_machine,
        preference_resolver=first.resolver,
        channels=first.channels,
        clock=clock,
        settings=first.settings,
        metrics=first.metrics,
        logger=first.logger,
        worker_id="second-worker",
    )
    for _ in range(6):
        await seed(unit_container, clock)

    results = await asyncio.gather(first.process_due(), second.process_due())

    assert sum(r.claimed for r in results) == 6
    assert len(in_app_channel.sent_ids) == len(set(in_app_channel.sent_ids)) == 6


# Multiple channels: each one is tracked on its own


@pytest.mark.asyncio
async def test_both_channels_receive_each_notification_once(
        two_channel_container: AsyncContainer,
        clock: FrozenClock,
        in_app_channel: RecordingChannel,
        email_channel: RecordingChannel,
) -> None:
    scheduler = await two_channel_container.get(NotificationScheduler)
    repo = await two_channel_container.get(NotificationRepository)
    n = await seed(two_channel_container, clock)

    result = await scheduler.process_due()

    assert result.delivered == 1
    assert in_app_channel.sent_ids == [n.notification_id]
    assert email_channel.sent_ids == [n.notification_id]
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.DELIVERED
    assert stored.delivered_channels == ["in_app", "email"]


@pytest.mark.parametrize("frequency", [EmailDigestFrequency.DAILY, EmailDigestFrequency.WEEKLY])
@pytest.mark.asyncio
async def test_digest_subscriber_gets_in_app_but_no_instant_email(
        two_channel_container: AsyncContainer,
        clock: FrozenClock,
        in_app_channel: RecordingChannel,
        email_channel: RecordingChannel,
        frequency: EmailDigestFrequency,
) -> None:
    scheduler = await two_channel_container.get(NotificationScheduler)
    repo = await two_channel_container.get(NotificationRepository)
    prefs = await two_channel_container.get(PreferenceRepository)
    await prefs.get_or_create("u1", "ws1", clock.now())
    await prefs.update_preferences("u1", "ws1", {"email_frequency": str(frequency)}, clock.now())
    n = await seed(two_channel_container, clock)

    result = await scheduler.process_due()

    assert result.delivered == 1
    assert in_app_channel.sent_ids == [n.notification_id]
    assert email_channel.sent == []
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivered_channels == ["in_app"]


@pytest.mark.asyncio
async def test_quiet_hours_hold_in_app_while_email_goes_out(
        two_channel_container: AsyncContainer,
        clock: FrozenClock,
        in_app_channel: RecordingChannel,
        email_channel: RecordingChannel,
) -> None:
    scheduler = await two_channel_container.get(NotificationScheduler)
    repo = await two_channel_container.get(NotificationRepository)
    prefs = await two_channel_container.get(PreferenceRepository)

    clock.set(datetime(2025, 3, 10, 23, 0, tzinfo=UTC))
    await prefs.get_or_create("u1", "ws1", clock.now())
    await prefs.update_preferences(
        "u1", "ws1",
        {"quiet_hours_enabled": True, "quiet_hours_start": "22:00", "quiet_hours_end": "08:00"},
        clock.now(),
    )
    n = await seed(two_channel_container, clock)

    result = await scheduler.process_due()

    assert result.deferred == 1
    assert email_channel.sent_ids == [n.notification_id]
    assert in_app_channel.sent == []
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.CREATED
    assert stored.next_retry_at == datetime(2025, 3, 11, 8, 0, tzinfo=UTC)
    assert stored.delivered_channels == ["email"]

    clock.set(datetime(2025, 3, 11, 8, 0, tzinfo=UTC))
    morning = await scheduler.process_due()

    assert morning.delivered == 1
    assert in_app_channel.sent_ids == [n.notification_id]
    assert email_channel.sent_ids == [n.notification_id]
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.DELIVERED
    assert stored.delivered_channels == ["email", "in_app"]


@pytest.mark.asyncio
async def test_failing_email_never_resends_in_app(
        two_channel_container: AsyncContainer,
        clock: FrozenClock,
        in_app_channel: RecordingChannel,
        email_channel: RecordingChannel,
) -> None:
    scheduler = await two_channel_container.get(NotificationScheduler)
    repo = await two_channel_container.get(NotificationRepository)
    n = await seed(two_channel_container, clock)
    email_channel.fail_always()

    exhausted = 0
    for _ in range(8):
        exhausted += (await scheduler.process_due()).exhausted
        clock.advance(seconds=1024)

    assert in_app_channel.sent_ids == [n.notification_id]
    assert email_channel.sent == []
    assert exhausted == 1
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.FAILED
    assert stored.retry_count == 5
    assert stored.delivered_channels == ["in_app"]
    assert stored.last_error is not None and stored.last_error.startswith("email:")


@pytest.mark.asyncio
async def test_retry_after_email_failure_only_sends_email(
        two_channel_container: AsyncContainer,
        clock: FrozenClock,
        in_app_channel: RecordingChannel,
        email_channel: RecordingChannel,
) -> None:
    scheduler = await two_channel_container.get(NotificationScheduler)
    repo = await two_channel_container.get(NotificationRepository)
    n = await seed(two_channel_container, clock)
    email_channel.fail_next()

    first = await scheduler.process_due()
    assert first.failed == 1
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.RETRYING
    assert stored.delivered_channels == ["in_app"]

    clock.advance(seconds=2)
    retry = await scheduler.process_due()

    assert retry.delivered == 1
    assert in_app_channel.sent_ids == [n.notification_id]
    assert email_channel.sent_ids == [n.notification_id]
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.DELIVERED
    assert stored.retry_count == 1
    assert stored.delivered_channels == ["in_app", "email"]


# Sweep counters only count transitions this worker actually made


@pytest.mark.asyncio
async def test_acknowledged_during_send_is_not_counted_as_delivered(
        unit_container: AsyncContainer, clock: FrozenClock, in_app_channel: RecordingChannel
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    state_machine = await unit_container.get(DeliveryStateMachine)
    repo = await unit_container.get(NotificationRepository)
    n = await seed(unit_container, clock)

    async def acknowledge(notification: DomainNotification) -> None:
        await state_machine.mark_acknowledged(notification.notification_id, notification.user_id)

    in_app_channel.on_send = acknowledge

    result = await scheduler.process_due()

    assert (result.claimed, result.delivered) == (1, 0)
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.ACKNOWLEDGED


@pytest.mark.asyncio
async def test_lost_lease_is_not_counted_as_delivered(
        unit_container: AsyncContainer,
        database: Database,
        clock: FrozenClock,
        in_app_channel: RecordingChannel,
) -> None:
    scheduler = await unit_container.get(NotificationScheduler)
    repo = await unit_container.get(NotificationRepository)
    n = await seed(unit_container, clock)

    async def steal_lease(notification: DomainNotification) -> None:
        await database.get_collection(CollectionNames.NOTIFICATIONS).update_one(
            {"notification_id": notification.notification_id}, {"$set": {"claimed_by": "other-worker"}}
        )

    in_app_channel.on_send = steal_lease

    result = await scheduler.process_due()

    assert (result.claimed, result.delivered) == (1, 0)
    stored = await repo.get_notification(n.notification_id)
    assert stored is not None
    assert stored.delivery_status == DeliveryStatus.CREATED
    assert stored.claimed_by == "other-worker"
