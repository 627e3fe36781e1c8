import pytest
from dishka import AsyncContainer

from notifyhub.core.database_context import Database
from notifyhub.db.repositories import AuditRepository, NotificationRepository, PreferenceRepository
from notifyhub.domain.enums import AuditAction, DeliveryStatus, NotificationPriority
from notifyhub.domain.notification import (
    DispatchRequest,
    LinkedEntity,
    NotificationAccessDeniedError,
    NotificationNotFoundError,
    NotificationValidationError,
    WorkspaceNotFoundError,
)
from notifyhub.services import notification_service
from notifyhub.services.notification_service import NotificationService
from tests.helpers.fakes import FrozenClock
from tests.helpers.workspace import add_members, remove_member

pytestmark = pytest.mark.unit


def request(**overrides: object) -> DispatchRequest:
    base: dict[str, object] = {
        "workspace_id": "ws1",
        "event_type": "task_assigned",
        "title": "You were assigned a task",
        "body": "Prepare the Q3 forecast",
    }
    base.update(overrides)
    return DispatchRequest(**base)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_dispatch_fans_out_to_every_member(unit_container: AsyncContainer, database: Database) -> None:
    svc = await unit_container.get(NotificationService)
    repo = await unit_container.get(NotificationRepository)
    await add_members(database, "ws1", "alice", "bob", "carol")

    ids = await svc.dispatch(request(linked_entity=LinkedEntity("task", "t-42"), metadata={"due": "friday"}))

    assert len(ids) == 3
    stored = [await repo.get_notification(i) for i in ids]
    assert sorted(n.user_id for n in stored if n) == ["alice", "bob", "carol"]
    for n in stored:
        assert n is not None
        assert n.delivery_status == DeliveryStatus.CREATED
        assert n.read is False
        assert n.linked_entity == LinkedEntity("task", "t-42")
        assert n.metadata == {"due": "friday"}


@pytest.mark.asyncio
async def test_dispatch_honours_explicit_recipients_and_excludes(
        unit_container: AsyncContainer, database: Database
) -> None:
    svc = await unit_container.get(NotificationService)
    repo = await unit_container.get(NotificationRepository)
    await add_members(database, "ws1", "alice", "bob", "carol")

    ids = await svc.dispatch(request(recipients=["alice", "bob", "bob", "mallory"], exclude=["bob"]))

    assert [n.user_id for n in [await repo.get_notification(i) for i in ids] if n] == ["alice"]


@pytest.mark.asyncio
async def test_actor_can_be_excluded_from_their_own_event(
        unit_container: AsyncContainer, database: Database
) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice", "bob")

    ids = await svc.dispatch(request(actor_id="alice", exclude=["alice"]))

    assert len(ids) == 1


@pytest.mark.asyncio
async def test_removed_member_stops_receiving(unit_container: AsyncContainer, database: Database) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice", "bob")
    await remove_member(database, "ws1", "bob")

    ids = await svc.dispatch(request(recipients=["alice", "bob"]))

    assert len(ids) == 1


@pytest.mark.asyncio
async def test_non_member_actor_is_rejected(unit_container: AsyncContainer, database: Database) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice")

    with pytest.raises(NotificationAccessDeniedError):
        await svc.dispatch(request(actor_id="outsider"))


@pytest.mark.asyncio
async def test_unknown_workspace_is_rejected(unit_container: AsyncContainer) -> None:
    svc = await unit_container.get(NotificationService)
    with pytest.raises(WorkspaceNotFoundError):
        await svc.dispatch(request(workspace_id="ghost"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "   "},
        {"event_type": ""},
        {"title": "x" * 501},
        {"priority": "critical"},
        {"rate_limit_per_minute": 0},
    ],
    ids=["blank_title", "blank_event_type", "long_title", "unknown_priority", "zero_rate_limit"],
)
async def test_invalid_requests_raise_validation_error(
        unit_container: AsyncContainer, database: Database, overrides: dict[str, object]
) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice")

    with pytest.raises(NotificationValidationError):
        await svc.dispatch(request(**overrides))


@pytest.mark.asyncio
async def test_opted_out_recipients_are_skipped_silently(
        unit_container: AsyncContainer, database: Database, clock: FrozenClock
) -> None:
    svc = await unit_container.get(NotificationService)
    prefs = await unit_container.get(PreferenceRepository)
    await add_members(database, "ws1", "alice", "bob")
    await prefs.get_or_create("bob", "ws1", clock.now())
    await prefs.update_preferences("bob", "ws1", {"notify_task_assignments": False}, clock.now())

    ids = await svc.dispatch(request())

    assert len(ids) == 1


@pytest.mark.asyncio
async def test_sync_updates_are_off_by_default(unit_container: AsyncContainer, database: Database) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice")

    assert await svc.dispatch(request(event_type="sync_completed")) == []


@pytest.mark.asyncio
async def test_rate_limit_drops_dispatch_beyond_budget(
        unit_container: AsyncContainer, database: Database
) -> None:
    svc = await unit_container.get(NotificationService)
    audit = await unit_container.get(AuditRepository)
    await add_members(database, "ws1", "alice", "bob")

    accepted = [await svc.dispatch(request(rate_limit_per_minute=2)) for _ in range(2)]
    dropped = await svc.dispatch(request(rate_limit_per_minute=2))

    assert [len(ids) for ids in accepted] == [2, 2]
    assert dropped == []
    limited = await audit.list_for_workspace("ws1", action=AuditAction.RATE_LIMITED)
    assert len(limited) == 1
    assert limited[0].notification_id is None
    assert limited[0].detail["limit"] == 2


@pytest.mark.asyncio
async def test_urgent_dispatch_goes_through_when_over_budget(
        unit_container: AsyncContainer, database: Database
) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice")

    await svc.dispatch(request(rate_limit_per_minute=1))
    assert await svc.dispatch(request(rate_limit_per_minute=1)) == []

    urgent = await svc.dispatch(request(rate_limit_per_minute=1, priority=NotificationPriority.URGENT))
    assert len(urgent) == 1


@pytest.mark.asyncio
async def test_each_created_notification_is_audited(unit_container: AsyncContainer, database: Database) -> None:
    svc = await unit_container.get(NotificationService)
    audit = await unit_container.get(AuditRepository)
    await add_members(database, "ws1", "alice", "bob")

    ids = await svc.dispatch(request())

    created = await audit.list_for_workspace("ws1", action=AuditAction.CREATED)
    assert sorted(e.notification_id for e in created if e.notification_id) == sorted(ids)
    assert all(e.new_status == DeliveryStatus.CREATED for e in created)


@pytest.mark.asyncio
async def test_unread_count_and_mark_all_read(unit_container: AsyncContainer, database: Database) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice")
    await add_members(database, "ws2", "alice")
    for _ in range(3):
        await svc.dispatch(request())
    await svc.dispatch(request(workspace_id="ws2"))

    assert await svc.get_unread_count("alice") == 4
    assert await svc.get_unread_count("alice", "ws1") == 3

    assert await svc.mark_all_read("alice", "ws1") == 3
    assert await svc.mark_all_read("alice", "ws1") == 0
    assert await svc.get_unread_count("alice") == 1


@pytest.mark.asyncio
async def test_mark_all_read_walks_the_inbox_in_batches(
        unit_container: AsyncContainer, database: Database, monkeypatch: pytest.MonkeyPatch
) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice")
    for _ in range(7):
        await svc.dispatch(request())

    monkeypatch.setattr(notification_service, "MARK_ALL_READ_BATCH_SIZE", 3)
    fetched: list[int] = []
    find_unread_ids = svc.repository.find_unread_ids

    async def recording_find(user_id: str, workspace_id: str | None = None, limit: int = 500) -> list[str]:
        batch = await find_unread_ids(user_id, workspace_id, limit=limit)
        fetched.append(len(batch))
        return batch

    monkeypatch.setattr(svc.repository, "find_unread_ids", recording_find)

    assert await svc.mark_all_read("alice", "ws1") == 7
    assert fetched == [3, 3, 1, 0]
    assert await svc.get_unread_count("alice", "ws1") == 0


@pytest.mark.asyncio
async def test_client_acknowledge_api(unit_container: AsyncContainer, database: Database) -> None:
    svc = await unit_container.get(NotificationService)
    await add_members(database, "ws1", "alice")
    [notification_id] = await svc.dispatch(request())

    assert await svc.mark_seen(notification_id, "alice") is True
    assert await svc.mark_seen(notification_id, "alice") is False
    assert await svc.mark_acknowledged(notification_id, "alice") is True
    assert await svc.mark_acknowledged(notification_id, "alice") is False
    assert await svc.mark_read(notification_id, "alice") is False  # acknowledging already read it

    trail = await svc.get_audit_trail(notification_id, "alice")
    assert [e.action for e in trail] == [AuditAction.CREATED, AuditAction.SEEN, AuditAction.ACKNOWLEDGED]


@pytest.mark.asyncio
async def test_delete_is_scoped_to_owner_and_audited(unit_container: AsyncContainer, database: Database) -> None:
    svc = await unit_container.get(NotificationService)
    audit = await unit_container.get(AuditRepository)
    await add_members(database, "ws1", "alice", "bob")
    ids = await svc.dispatch(request(recipients=["alice"]))

    with pytest.raises(NotificationNotFoundError):
        await svc.delete_notification(ids[0], "bob")

    await svc.delete_notification(ids[0], "alice")
    with pytest.raises(NotificationNotFoundError):
        await svc.get_audit_trail(ids[0], "alice")
    deleted = await audit.list_for_workspace("ws1", action=AuditAction.DELETED)
    assert [e.notification_id for e in deleted] == ids
