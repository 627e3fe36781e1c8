from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter

from notifyhub.api.dependencies import AdminUserId
from notifyhub.schemas_pydantic.notification import (
    MaintenanceRequest,
    MaintenanceResponse,
    MaintenanceTaskResponse,
)
from notifyhub.services.retention_service import NotificationRetentionService

router = APIRouter(prefix="/notifications", tags=["maintenance"], route_class=DishkaRoute)


@router.post("/maintenance", response_model=MaintenanceResponse)
async def run_maintenance(
    body: MaintenanceRequest,
    _: AdminUserId,
    retention_service: FromDishka[NotificationRetentionService],
) -> MaintenanceResponse:
    results = await retention_service.run_maintenance(body.tasks)
    return MaintenanceResponse(results=[MaintenanceTaskResponse.model_validate(r) for r in results])
