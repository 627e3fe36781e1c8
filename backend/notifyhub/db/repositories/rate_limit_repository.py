from datetime import datetime

from pymongo import ASCENDING, IndexModel, ReturnDocument
from pymongo.errors import DuplicateKeyError

from notifyhub.core.database_context import Collection, Database
from notifyhub.domain.enums import CollectionNames


class RateLimitRepository:
    def __init__(self, database: Database):
        self.db: Database = database
        self.counters_collection: Collection = self.db.get_collection(CollectionNames.NOTIFICATION_RATE_LIMITS)

    async def create_indexes(self) -> None:
        await self.counters_collection.create_indexes([
            IndexModel([("workspace_id", ASCENDING), ("window_start", ASCENDING)], unique=True),
            IndexModel([("window_start", ASCENDING)]),
        ])

    async def increment(self, workspace_id: str, window_start: datetime) -> int:
        """Insert-or-increment the window counter and return the post-increment count."""
        key = {"workspace_id": workspace_id, "window_start": window_start}
        update = {"$inc": {"count": 1}}
        try:
            doc = await self.counters_collection.find_one_and_update(
                key, update, upsert=True, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            # Two first-in-window upserts raced on the unique index; the row now exists.
            doc = await self.counters_collection.find_one_and_update(
                key, update, return_document=ReturnDocument.AFTER
            )
        return int(doc["count"])

    async def get_count(self, workspace_id: str, window_start: datetime) -> int:
        doc = await self.counters_collection.find_one({"workspace_id": workspace_id, "window_start": window_start})
        return int(doc["count"]) if doc else 0

    async def delete_windows_before(self, cutoff: datetime) -> int:
        result = await self.counters_collection.delete_many({"window_start": {"$lt": cutoff}})
        return result.deleted_count
