from datetime import datetime
from enum import Enum
from typing import Any

from pymongo import ASCENDING, DESCENDING, IndexModel, ReturnDocument

from notifyhub.core.database_context import Collection, Database
from notifyhub.domain.enums import (
    CollectionNames,
    DeliveryStatus,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)
from notifyhub.domain.notification import DomainNotification, NotificationCursor
from notifyhub.infrastructure.mappers import NotificationMapper

CLAIMABLE_STATUSES = (DeliveryStatus.CREATED, DeliveryStatus.FAILED, DeliveryStatus.RETRYING)

NEWEST_FIRST = [("created_at", DESCENDING), ("notification_id", DESCENDING)]
CLAIM_ORDER = [("priority_rank", DESCENDING), ("created_at", ASCENDING)]


def _plain(changes: dict[str, Any]) -> dict[str, Any]:
    return {k: v.value if isinstance(v, Enum) else v for k, v in changes.items()}


class NotificationRepository:
    def __init__(self, database: Database):
        self.db: Database = database
        self.notifications_collection: Collection = self.db.get_collection(CollectionNames.NOTIFICATIONS)
        self.mapper = NotificationMapper()

    async def create_indexes(self) -> None:
        await self.notifications_collection.create_indexes([
            IndexModel([("notification_id", ASCENDING)], unique=True),
            # List API: keyset over (created_at, notification_id) per recipient
            IndexModel([
                ("user_id", ASCENDING),
                ("workspace_id", ASCENDING),
                ("archived", ASCENDING),
                ("created_at", DESCENDING),
                ("notification_id", DESCENDING),
            ]),
            IndexModel([("user_id", ASCENDING), ("categories", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("user_id", ASCENDING), ("workspace_id", ASCENDING), ("read", ASCENDING)]),
            # Retry claiming
            IndexModel([
                ("delivery_status", ASCENDING),
                ("next_retry_at", ASCENDING),
                ("priority_rank", DESCENDING),
                ("created_at", ASCENDING),
            ]),
            IndexModel([("read", ASCENDING), ("archived", ASCENDING), ("created_at", ASCENDING)]),
            IndexModel([("expires_at", ASCENDING)], sparse=True),
        ])

    async def insert_notification(self, notification: DomainNotification) -> None:
        await self.notifications_collection.insert_one(self.mapper.to_mongo_document(notification))

    async def get_notification(self, notification_id: str, user_id: str | None = None) -> DomainNotification | None:
        query: dict[str, object] = {"notification_id": notification_id}
        if user_id is not None:
            query["user_id"] = user_id
        doc = await self.notifications_collection.find_one(query)
        if not doc:
            return None
        return self.mapper.from_mongo_document(doc)

    async def compare_and_set(
            self, notification_id: str, expected_version: int, changes: dict[str, Any]
    ) -> DomainNotification | None:
        """Apply ``changes`` only if the stored version still equals ``expected_version``.

        Returns the updated notification, or None when another writer got there first.
        """
        doc = await self.notifications_collection.find_one_and_update(
            {"notification_id": notification_id, "version": expected_version},
            {"$set": _plain(changes), "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self.mapper.from_mongo_document(doc)

    async def claim_next_due(
            self,
            now: datetime,
            worker_id: str,
            lease_until: datetime,
            max_attempts: int,
    ) -> DomainNotification | None:
        """Atomically lease the most urgent due notification to ``worker_id``.

        Rows leased by another worker are skipped, not waited on; an expired
        lease makes a row claimable again.
        """
        doc = await self.notifications_collection.find_one_and_update(
            {
                "delivery_status": {"$in": [s.value for s in CLAIMABLE_STATUSES]},
                "retry_count": {"$lt": max_attempts},
                "$and": [
                    {"$or": [{"next_retry_at": None}, {"next_retry_at": {"$lte": now}}]},
                    {"$or": [{"claimed_until": None}, {"claimed_until": {"$lte": now}}]},
                    {"$or": [{"expires_at": None}, {"expires_at": {"$gt": now}}]},
                ],
            },
            {"$set": {"claimed_by": worker_id, "claimed_until": lease_until}, "$inc": {"version": 1}},
            sort=CLAIM_ORDER,
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self.mapper.from_mongo_document(doc)

    async def list_page(
            self,
            user_id: str,
            limit: int,
            workspace_id: str | None = None,
            cursor: NotificationCursor | None = None,
            unread_only: bool = False,
            category: NotificationCategory | None = None,
            priority: NotificationPriority | None = None,
            include_archived: bool = False,
    ) -> list[DomainNotification]:
        query: dict[str, object] = {"user_id": user_id}
        if workspace_id is not None:
            query["workspace_id"] = workspace_id
        if not include_archived:
            query["archived"] = False
        if unread_only:
            query["read"] = False
        if category is not None:
            query["categories"] = category.value
        if priority is not None:
            query["priority"] = priority.value
        if cursor is not None:
            query["$or"] = [
                {"created_at": {"$lt": cursor.created_at}},
                {"created_at": cursor.created_at, "notification_id": {"$lt": cursor.notification_id}},
            ]

        items: list[DomainNotification] = []
        async for doc in self.notifications_collection.find(query).sort(NEWEST_FIRST).limit(limit):
            items.append(self.mapper.from_mongo_document(doc))
        return items

    async def count_unread(self, user_id: str, workspace_id: str | None = None) -> int:
        query: dict[str, object] = {"user_id": user_id, "read": False, "archived": False}
        if workspace_id is not None:
            query["workspace_id"] = workspace_id
        return await self.notifications_collection.count_documents(query)

    async def find_unread_ids(self, user_id: str, workspace_id: str | None = None, limit: int = 500) -> list[str]:
        query: dict[str, object] = {"user_id": user_id, "read": False}
        if workspace_id is not None:
            query["workspace_id"] = workspace_id
        cursor = (
            self.notifications_collection.find(query, {"notification_id": 1, "_id": 0})
            .sort(NEWEST_FIRST)
            .limit(limit)
        )
        return [doc["notification_id"] async for doc in cursor]

    async def find_digest_items(
            self,
            user_id: str,
            since: datetime,
            until: datetime,
            workspace_id: str | None,
            exclude_workspaces: list[str],
            limit: int,
    ) -> list[DomainNotification]:
        """Unread notifications created in (since, until] that have not already gone out by email."""
        query: dict[str, Any] = {
            "user_id": user_id,
            "read": False,
            "archived": False,
            "created_at": {"$gt": since, "$lte": until},
            "delivered_channels": {"$ne": NotificationChannel.EMAIL.value},
        }
        if workspace_id is not None:
            query["workspace_id"] = workspace_id
        elif exclude_workspaces:
            query["workspace_id"] = {"$nin": exclude_workspaces}
        cursor = self.notifications_collection.find(query).sort(NEWEST_FIRST).limit(limit)
        return [self.mapper.from_mongo_document(doc) async for doc in cursor]

    async def delete_notification(self, notification_id: str, user_id: str) -> DomainNotification | None:
        doc = await self.notifications_collection.find_one_and_delete(
            {"notification_id": notification_id, "user_id": user_id}
        )
        if not doc:
            return None
        return self.mapper.from_mongo_document(doc)

    async def archive_read_before(self, cutoff: datetime, now: datetime) -> int:
        result = await self.notifications_collection.update_many(
            {"read": True, "archived": False, "created_at": {"$lt": cutoff}},
            {"$set": {"archived": True, "archived_at": now}},
        )
        return result.modified_count

    async def find_expired(self, now: datetime, limit: int) -> list[DomainNotification]:
        items: list[DomainNotification] = []
        cursor = self.notifications_collection.find({"expires_at": {"$ne": None, "$lte": now}}).limit(limit)
        async for doc in cursor:
            items.append(self.mapper.from_mongo_document(doc))
        return items

    async def delete_expired(self, notification_ids: list[str], now: datetime) -> int:
        if not notification_ids:
            return 0
        result = await self.notifications_collection.delete_many(
            {"notification_id": {"$in": notification_ids}, "expires_at": {"$ne": None, "$lte": now}}
        )
        return result.deleted_count
