from dataclasses import asdict, fields
from typing import Any

from notifyhub.domain.enums import EmailDigestFrequency
from notifyhub.domain.preferences import DomainNotificationPreferences
from notifyhub.infrastructure.mappers.notification_mapper import as_utc


class PreferenceMapper:
    @staticmethod
    def to_mongo_document(preferences: DomainNotificationPreferences) -> dict[str, Any]:
        doc = asdict(preferences)
        doc["email_frequency"] = str(preferences.email_frequency)
        return doc

    @staticmethod
    def from_mongo_document(doc: dict[str, Any]) -> DomainNotificationPreferences:
        allowed = {f.name for f in fields(DomainNotificationPreferences)}
        filtered = {k: v for k, v in doc.items() if k in allowed}
        if "email_frequency" in filtered:
            filtered["email_frequency"] = EmailDigestFrequency(filtered["email_frequency"])
        filtered["created_at"] = as_utc(filtered.get("created_at"))
        filtered["updated_at"] = as_utc(filtered.get("updated_at"))
        filtered["last_digest_at"] = as_utc(filtered.get("last_digest_at"))
        return DomainNotificationPreferences(**filtered)
