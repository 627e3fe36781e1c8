from notifyhub.db.repositories import NotificationRepository
from notifyhub.domain.enums import NotificationCategory, NotificationPriority
from notifyhub.domain.notification import (
    DomainNotificationPage,
    NotificationCursor,
    NotificationValidationError,
)
from notifyhub.services.access_policy import WorkspaceAccessPolicy
from notifyhub.settings import Settings


class NotificationQueryService:
    """Keyset-paginated read path over a user's notifications.

    Pages are ordered by (created_at desc, notification_id desc) and continue
    strictly after the cursor, so rows inserted between page fetches never
    shift or duplicate rows already being paged through.
    """

    def __init__(
        self,
        notification_repository: NotificationRepository,
        access_policy: WorkspaceAccessPolicy,
        settings: Settings,
    ) -> None:
        self.repository = notification_repository
        self.access = access_policy
        self.settings = settings

    def _page_size(self, page_size: int | None) -> int:
        if page_size is None:
            return self.settings.NOTIF_DEFAULT_PAGE_SIZE
        if page_size < 1:
            raise NotificationValidationError("page_size must be at least 1")
        return min(page_size, self.settings.NOTIF_MAX_PAGE_SIZE)

    async def list_notifications(
        self,
        user_id: str,
        workspace_id: str | None = None,
        page_size: int | None = None,
        cursor: str | None = None,
        unread_only: bool = False,
        category: NotificationCategory | None = None,
        priority: NotificationPriority | None = None,
        include_archived: bool = False,
    ) -> DomainNotificationPage:
        size = self._page_size(page_size)
        position = NotificationCursor.decode(cursor) if cursor else None
        if workspace_id is not None:
            await self.access.ensure_member(user_id, workspace_id)

        # One extra row tells whether another page exists without a count query.
        rows = await self.repository.list_page(
            user_id=user_id,
            limit=size + 1,
            workspace_id=workspace_id,
            cursor=position,
            unread_only=unread_only,
            category=category,
            priority=priority,
            include_archived=include_archived,
        )
        has_more = len(rows) > size
        items = rows[:size]
        next_cursor = None
        if has_more:
            last = items[-1]
            next_cursor = NotificationCursor(last.created_at, last.notification_id).encode()
        return DomainNotificationPage(items=items, next_cursor=next_cursor, has_more=has_more)
