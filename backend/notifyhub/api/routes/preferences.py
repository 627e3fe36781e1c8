from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter, Query

from notifyhub.api.dependencies import CurrentUserId
from notifyhub.domain.preferences import DomainPreferencesUpdate
from notifyhub.schemas_pydantic.preferences import (
    EffectivePreferencesResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
)
from notifyhub.services.notification_preferences_service import NotificationPreferencesService

router = APIRouter(prefix="/notifications/preferences", tags=["preferences"], route_class=DishkaRoute)


@router.get("", response_model=NotificationPreferencesResponse)
async def get_preferences(
    user_id: CurrentUserId,
    preferences_service: FromDishka[NotificationPreferencesService],
    workspace_id: str | None = Query(None, description="Omit for the global row"),
) -> NotificationPreferencesResponse:
    preferences = await preferences_service.get_preferences(user_id, workspace_id)
    return NotificationPreferencesResponse.model_validate(preferences)


@router.patch("", response_model=NotificationPreferencesResponse)
async def update_preferences(
    update: NotificationPreferencesUpdate,
    user_id: CurrentUserId,
    preferences_service: FromDishka[NotificationPreferencesService],
    workspace_id: str | None = Query(None, description="Omit for the global row"),
) -> NotificationPreferencesResponse:
    domain_update = DomainPreferencesUpdate(**update.model_dump(exclude_none=True))
    preferences = await preferences_service.update_preferences(user_id, workspace_id, domain_update)
    return NotificationPreferencesResponse.model_validate(preferences)


@router.get("/effective", response_model=EffectivePreferencesResponse)
async def get_effective_preferences(
    user_id: CurrentUserId,
    preferences_service: FromDishka[NotificationPreferencesService],
    workspace_id: str | None = Query(None),
) -> EffectivePreferencesResponse:
    effective = await preferences_service.get_effective_preferences(user_id, workspace_id)
    return EffectivePreferencesResponse.model_validate(effective)
