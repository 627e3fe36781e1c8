from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter, Query

from notifyhub.api.dependencies import CurrentUserId
from notifyhub.domain.enums import NotificationCategory, NotificationPriority
from notifyhub.schemas_pydantic.notification import (
    AuditEntryResponse,
    DeleteNotificationResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    TransitionResponse,
    UnreadCountResponse,
)
from notifyhub.services.notification_query_service import NotificationQueryService
from notifyhub.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"], route_class=DishkaRoute)


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    user_id: CurrentUserId,
    query_service: FromDishka[NotificationQueryService],
    workspace_id: str | None = Query(None),
    cursor: str | None = Query(None, description="Opaque token from the previous page's next_cursor"),
    page_size: int | None = Query(None, ge=1, description="Capped server-side"),
    unread_only: bool = Query(False),
    category: NotificationCategory | None = Query(None),
    priority: NotificationPriority | None = Query(None),
    include_archived: bool = Query(False),
) -> NotificationListResponse:
    page = await query_service.list_notifications(
        user_id=user_id,
        workspace_id=workspace_id,
        page_size=page_size,
        cursor=cursor,
        unread_only=unread_only,
        category=category,
        priority=priority,
        include_archived=include_archived,
    )
    return NotificationListResponse(
        items=[NotificationResponse.from_domain(n) for n in page.items],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    user_id: CurrentUserId,
    notification_service: FromDishka[NotificationService],
    workspace_id: str | None = Query(None),
) -> UnreadCountResponse:
    count = await notification_service.get_unread_count(user_id, workspace_id)
    return UnreadCountResponse(unread_count=count)


@router.put("/{notification_id}/seen", response_model=TransitionResponse)
async def mark_notification_seen(
    notification_id: str,
    user_id: CurrentUserId,
    notification_service: FromDishka[NotificationService],
) -> TransitionResponse:
    changed = await notification_service.mark_seen(notification_id, user_id)
    return TransitionResponse(notification_id=notification_id, changed=changed)


@router.put("/{notification_id}/acknowledge", response_model=TransitionResponse)
async def acknowledge_notification(
    notification_id: str,
    user_id: CurrentUserId,
    notification_service: FromDishka[NotificationService],
) -> TransitionResponse:
    changed = await notification_service.mark_acknowledged(notification_id, user_id)
    return TransitionResponse(notification_id=notification_id, changed=changed)


@router.put("/{notification_id}/read", response_model=TransitionResponse)
async def mark_notification_read(
    notification_id: str,
    user_id: CurrentUserId,
    notification_service: FromDishka[NotificationService],
) -> TransitionResponse:
    changed = await notification_service.mark_read(notification_id, user_id)
    return TransitionResponse(notification_id=notification_id, changed=changed)


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    user_id: CurrentUserId,
    notification_service: FromDishka[NotificationService],
    workspace_id: str = Query(...),
) -> MarkAllReadResponse:
    updated = await notification_service.mark_all_read(user_id, workspace_id)
    return MarkAllReadResponse(updated=updated)


@router.delete("/{notification_id}", response_model=DeleteNotificationResponse)
async def delete_notification(
    notification_id: str,
    user_id: CurrentUserId,
    notification_service: FromDishka[NotificationService],
) -> DeleteNotificationResponse:
    await notification_service.delete_notification(notification_id, user_id)
    return DeleteNotificationResponse()


@router.get("/{notification_id}/audit", response_model=list[AuditEntryResponse])
async def get_notification_audit(
    notification_id: str,
    user_id: CurrentUserId,
    notification_service: FromDishka[NotificationService],
) -> list[AuditEntryResponse]:
    entries = await notification_service.get_audit_trail(notification_id, user_id)
    return [AuditEntryResponse.model_validate(e) for e in entries]
