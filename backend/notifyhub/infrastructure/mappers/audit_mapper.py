from dataclasses import asdict, fields
from typing import Any

from notifyhub.domain.audit import AuditLogEntry
from notifyhub.domain.enums import AuditAction, DeliveryStatus
from notifyhub.infrastructure.mappers.notification_mapper import as_utc


class AuditMapper:
    @staticmethod
    def to_mongo_document(entry: AuditLogEntry) -> dict[str, Any]:
        doc = asdict(entry)
        doc["action"] = str(entry.action)
        doc["previous_status"] = str(entry.previous_status) if entry.previous_status else None
        doc["new_status"] = str(entry.new_status) if entry.new_status else None
        return doc

    @staticmethod
    def from_mongo_document(doc: dict[str, Any]) -> AuditLogEntry:
        allowed = {f.name for f in fields(AuditLogEntry)}
        filtered = {k: v for k, v in doc.items() if k in allowed}
        filtered["action"] = AuditAction(filtered["action"])
        if filtered.get("previous_status"):
            filtered["previous_status"] = DeliveryStatus(filtered["previous_status"])
        if filtered.get("new_status"):
            filtered["new_status"] = DeliveryStatus(filtered["new_status"])
        filtered["created_at"] = as_utc(filtered["created_at"])
        return AuditLogEntry(**filtered)
