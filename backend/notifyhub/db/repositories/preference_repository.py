from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

from pymongo import ASCENDING, IndexModel, ReturnDocument

from notifyhub.core.database_context import Collection, Database
from notifyhub.domain.enums import CollectionNames, EmailDigestFrequency
from notifyhub.domain.preferences import DomainNotificationPreferences
from notifyhub.infrastructure.mappers import PreferenceMapper

DIGEST_FREQUENCIES = (EmailDigestFrequency.DAILY, EmailDigestFrequency.WEEKLY)


class PreferenceRepository:
    def __init__(self, database: Database):
        self.db: Database = database
        self.preferences_collection: Collection = self.db.get_collection(CollectionNames.NOTIFICATION_PREFERENCES)
        self.mapper = PreferenceMapper()

    async def create_indexes(self) -> None:
        await self.preferences_collection.create_indexes([
            IndexModel([("user_id", ASCENDING), ("workspace_id", ASCENDING)], unique=True),
            IndexModel([("email_enabled", ASCENDING), ("email_frequency", ASCENDING)]),
        ])

    async def get_preferences(self, user_id: str, workspace_id: str | None) -> DomainNotificationPreferences | None:
        doc = await self.preferences_collection.find_one({"user_id": user_id, "workspace_id": workspace_id})
        if not doc:
            return None
        return self.mapper.from_mongo_document(doc)

    async def get_or_create(
            self, user_id: str, workspace_id: str | None, now: datetime
    ) -> DomainNotificationPreferences:
        defaults = DomainNotificationPreferences(user_id=user_id, workspace_id=workspace_id, created_at=now)
        doc = self.mapper.to_mongo_document(defaults)
        doc["updated_at"] = now
        doc = await self.preferences_collection.find_one_and_update(
            {"user_id": user_id, "workspace_id": workspace_id},
            {"$setOnInsert": doc},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self.mapper.from_mongo_document(doc)

    async def update_preferences(
            self, user_id: str, workspace_id: str | None, changes: dict[str, Any], now: datetime
    ) -> DomainNotificationPreferences | None:
        doc = await self.preferences_collection.find_one_and_update(
            {"user_id": user_id, "workspace_id": workspace_id},
            {"$set": {**changes, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self.mapper.from_mongo_document(doc)

    async def iter_digest_subscribers(self) -> AsyncIterator[DomainNotificationPreferences]:
        """Rows that receive email as a daily or weekly digest."""
        cursor = self.preferences_collection.find({
            "email_enabled": True,
            "email_frequency": {"$in": [str(f) for f in DIGEST_FREQUENCIES]},
        })
        async for doc in cursor:
            yield self.mapper.from_mongo_document(doc)

    async def claim_digest(self, user_id: str, workspace_id: str | None, slot: datetime, now: datetime) -> bool:
        """Stamp ``last_digest_at`` if no digest has gone out since ``slot``; False if another worker got there first."""
        result = await self.preferences_collection.update_one(
            {
                "user_id": user_id,
                "workspace_id": workspace_id,
                "$or": [{"last_digest_at": None}, {"last_digest_at": {"$lt": slot}}],
            },
            {"$set": {"last_digest_at": now}},
        )
        return result.modified_count == 1

    async def release_digest(self, user_id: str, workspace_id: str | None, previous: datetime | None) -> None:
        await self.preferences_collection.update_one(
            {"user_id": user_id, "workspace_id": workspace_id},
            {"$set": {"last_digest_at": previous}},
        )

    async def list_scoped_workspace_ids(self, user_id: str) -> list[str]:
        """Workspaces where the user keeps a row of their own instead of inheriting the global one."""
        cursor = self.preferences_collection.find(
            {"user_id": user_id, "workspace_id": {"$ne": None}}, {"workspace_id": 1, "_id": 0}
        )
        return [doc["workspace_id"] async for doc in cursor]
