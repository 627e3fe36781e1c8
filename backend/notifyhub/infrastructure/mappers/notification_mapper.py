from dataclasses import asdict, fields
from datetime import UTC, datetime
from typing import Any

from notifyhub.domain.enums import DeliveryStatus, NotificationPriority
from notifyhub.domain.notification import DomainNotification, categories_for

_DATETIME_FIELDS = tuple(
    f.name for f in fields(DomainNotification) if "datetime" in str(f.type)
)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the store."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class NotificationMapper:
    """Map Notification domain models to/from MongoDB documents."""

    @staticmethod
    def to_mongo_document(notification: DomainNotification) -> dict[str, Any]:
        doc = asdict(notification)
        doc["priority"] = str(notification.priority)
        doc["delivery_status"] = str(notification.delivery_status)
        # Derived fields backing the claim sort and the category filter.
        doc["priority_rank"] = notification.priority.rank
        doc["categories"] = [str(c) for c in categories_for(notification.event_type)]
        return doc

    @staticmethod
    def from_mongo_document(doc: dict[str, Any]) -> DomainNotification:
        allowed = {f.name for f in fields(DomainNotification)}
        filtered = {k: v for k, v in doc.items() if k in allowed}
        filtered["priority"] = NotificationPriority(filtered.get("priority", NotificationPriority.NORMAL))
        filtered["delivery_status"] = DeliveryStatus(filtered.get("delivery_status", DeliveryStatus.CREATED))
        for name in _DATETIME_FIELDS:
            if name in filtered:
                filtered[name] = as_utc(filtered[name])
        return DomainNotification(**filtered)
