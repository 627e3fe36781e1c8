import logging

from notifyhub.db.repositories import WorkspaceMembershipRepository
from notifyhub.domain.notification import NotificationAccessDeniedError, WorkspaceNotFoundError


class WorkspaceAccessPolicy:
    """Membership checks applied by every service method that acts on a workspace."""

    def __init__(self, membership_repository: WorkspaceMembershipRepository, logger: logging.Logger) -> None:
        self.membership = membership_repository
        self.logger = logger

    async def is_member(self, user_id: str, workspace_id: str) -> bool:
        return await self.membership.is_member(workspace_id, user_id)

    async def ensure_member(self, user_id: str, workspace_id: str) -> None:
        if not await self.membership.is_member(workspace_id, user_id):
            self.logger.warning(
                "Workspace access denied",
                extra={"user_id": user_id, "workspace_id": workspace_id},
            )
            raise NotificationAccessDeniedError(user_id, workspace_id)

    async def resolve_recipients(
            self,
            workspace_id: str,
            recipients: list[str] | None,
            exclude: list[str],
    ) -> list[str]:
        """Current members to notify, in input order when an explicit list is given.

        Explicit recipients who are not (or no longer) members are dropped silently.
        """
        members = await self.membership.list_member_ids(workspace_id)
        if not members:
            raise WorkspaceNotFoundError(workspace_id)

        member_set = set(members)
        excluded = set(exclude)
        candidates = members if recipients is None else [r for r in dict.fromkeys(recipients) if r in member_set]
        resolved = [user_id for user_id in candidates if user_id not in excluded]

        dropped = 0 if recipients is None else len(set(recipients) - member_set)
        if dropped:
            self.logger.info(
                f"Dropped {dropped} non-member recipients",
                extra={"workspace_id": workspace_id, "dropped": dropped},
            )
        return resolved
