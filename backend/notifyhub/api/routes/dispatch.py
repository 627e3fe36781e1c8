from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter

from notifyhub.api.dependencies import CurrentUserId
from notifyhub.domain.notification import DispatchRequest, LinkedEntity
from notifyhub.schemas_pydantic.notification import DispatchNotificationRequest, DispatchNotificationResponse
from notifyhub.services.notification_service import NotificationService

router = APIRouter(prefix="/workspaces", tags=["dispatch"], route_class=DishkaRoute)


@router.post("/{workspace_id}/notifications", response_model=DispatchNotificationResponse, status_code=202)
async def dispatch_notification(
    workspace_id: str,
    body: DispatchNotificationRequest,
    user_id: CurrentUserId,
    notification_service: FromDishka[NotificationService],
) -> DispatchNotificationResponse:
    """Fan a workspace event out to its members; delivery happens asynchronously."""
    linked = body.linked_entity
    request = DispatchRequest(
        workspace_id=workspace_id,
        event_type=body.event_type,
        title=body.title,
        body=body.body,
        priority=body.priority,
        linked_entity=LinkedEntity(linked.entity_type, linked.entity_id) if linked else None,
        recipients=body.recipients,
        exclude=body.exclude,
        action_url=body.action_url,
        metadata=body.metadata,
        expires_at=body.expires_at,
        actor_id=user_id,
        rate_limit_per_minute=body.rate_limit_per_minute,
    )
    notification_ids = await notification_service.dispatch(request)
    return DispatchNotificationResponse(notification_ids=notification_ids, created=len(notification_ids))
