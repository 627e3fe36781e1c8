from datetime import datetime

from pymongo import ASCENDING, IndexModel

from notifyhub.core.database_context import Collection, Database
from notifyhub.domain.audit import AuditLogEntry
from notifyhub.domain.enums import CollectionNames
from notifyhub.infrastructure.mappers import AuditMapper


class AuditRepository:
    """Append-only store for notification lifecycle entries."""

    def __init__(self, database: Database):
        self.db: Database = database
        self.audit_collection: Collection = self.db.get_collection(CollectionNames.NOTIFICATION_AUDIT_LOG)
        self.mapper = AuditMapper()

    async def create_indexes(self) -> None:
        await self.audit_collection.create_indexes([
            IndexModel([("notification_id", ASCENDING), ("created_at", ASCENDING)]),
            IndexModel([("workspace_id", ASCENDING), ("action", ASCENDING), ("created_at", ASCENDING)]),
            IndexModel([("created_at", ASCENDING)]),
        ])

    async def append(self, entry: AuditLogEntry) -> None:
        await self.audit_collection.insert_one(self.mapper.to_mongo_document(entry))

    async def append_many(self, entries: list[AuditLogEntry]) -> None:
        if entries:
            await self.audit_collection.insert_many([self.mapper.to_mongo_document(e) for e in entries])

    async def list_for_notification(self, notification_id: str) -> list[AuditLogEntry]:
        entries: list[AuditLogEntry] = []
        cursor = self.audit_collection.find({"notification_id": notification_id}).sort("created_at", ASCENDING)
        async for doc in cursor:
            entries.append(self.mapper.from_mongo_document(doc))
        return entries

    async def list_for_workspace(
            self, workspace_id: str, action: str | None = None, limit: int = 100
    ) -> list[AuditLogEntry]:
        query: dict[str, object] = {"workspace_id": workspace_id}
        if action is not None:
            query["action"] = action
        entries: list[AuditLogEntry] = []
        async for doc in self.audit_collection.find(query).sort("created_at", ASCENDING).limit(limit):
            entries.append(self.mapper.from_mongo_document(doc))
        return entries

    async def delete_before(self, cutoff: datetime) -> int:
        result = await self.audit_collection.delete_many({"created_at": {"$lt": cutoff}})
        return result.deleted_count
