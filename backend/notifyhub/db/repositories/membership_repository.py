from pymongo import ASCENDING, IndexModel

from notifyhub.core.database_context import Collection, Database
from notifyhub.domain.enums import CollectionNames


class WorkspaceMembershipRepository:
    """Read side of workspace membership; rows are written by the membership service.

    Document shape: ``{"workspace_id": str, "user_id": str, "role": str}``.
    """

    def __init__(self, database: Database):
        self.db: Database = database
        self.members_collection: Collection = self.db.get_collection(CollectionNames.WORKSPACE_MEMBERS)

    async def create_indexes(self) -> None:
        await self.members_collection.create_indexes([
            IndexModel([("workspace_id", ASCENDING), ("user_id", ASCENDING)], unique=True),
            IndexModel([("user_id", ASCENDING)]),
        ])

    async def list_member_ids(self, workspace_id: str) -> list[str]:
        member_ids: list[str] = []
        cursor = self.members_collection.find({"workspace_id": workspace_id}, {"user_id": 1}).sort("user_id", ASCENDING)
        async for doc in cursor:
            member_ids.append(doc["user_id"])
        return member_ids

    async def is_member(self, workspace_id: str, user_id: str) -> bool:
        doc = await self.members_collection.find_one({"workspace_id": workspace_id, "user_id": user_id})
        return doc is not None
