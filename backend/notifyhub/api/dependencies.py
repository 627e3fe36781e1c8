from typing import Annotated

from dishka import FromDishka
from dishka.integrations.fastapi import inject
from fastapi import Depends, Header, Request

from notifyhub.domain.exceptions import ForbiddenError, UnauthorizedError
from notifyhub.settings import Settings


async def current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> str:
    """Acting user, asserted by the upstream gateway that terminated authentication."""
    if x_user_id is None or not x_user_id.strip():
        raise UnauthorizedError("X-User-Id header is required")
    return x_user_id.strip()


CurrentUserId = Annotated[str, Depends(current_user_id)]


@inject
async def admin_user_id(
    request: Request,
    user_id: CurrentUserId,
    settings: FromDishka[Settings],
) -> str:
    """Acting user, who must be listed in ``NOTIF_ADMIN_USER_IDS``."""
    if user_id not in settings.NOTIF_ADMIN_USER_IDS:
        raise ForbiddenError("Operator access required")
    return user_id


AdminUserId = Annotated[str, Depends(admin_user_id)]
