from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from notifyhub.domain.enums import DeliveryStatus, EmailDigestFrequency, MaintenanceTask, NotificationPriority
from notifyhub.domain.notification.exceptions import InvalidCursorError


@dataclass(frozen=True)
class LinkedEntity:
    entity_type: str
    entity_id: str


@dataclass
class DomainNotification:
    user_id: str
    workspace_id: str
    event_type: str
    title: str
    created_at: datetime
    body: str = ""
    notification_id: str = field(default_factory=lambda: str(uuid4()))
    priority: NotificationPriority = NotificationPriority.NORMAL

    entity_type: str | None = None
    entity_id: str | None = None
    action_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    read: bool = False
    read_at: datetime | None = None
    delivery_status: DeliveryStatus = DeliveryStatus.CREATED
    delivered_at: datetime | None = None
    seen_at: datetime | None = None
    acknowledged_at: datetime | None = None
    expires_at: datetime | None = None
    archived: bool = False
    archived_at: datetime | None = None

    retry_count: int = 0
    next_retry_at: datetime | None = None
    last_error: str | None = None
    delivered_channels: list[str] = field(default_factory=list)
    claimed_by: str | None = None
    claimed_until: datetime | None = None
    version: int = 0

    @property
    def linked_entity(self) -> LinkedEntity | None:
        if self.entity_type is None or self.entity_id is None:
            return None
        return LinkedEntity(self.entity_type, self.entity_id)


@dataclass
class DispatchRequest:
    """Everything a business module supplies when announcing an event."""

    workspace_id: str
    event_type: str
    title: str
    body: str = ""
    priority: NotificationPriority = NotificationPriority.NORMAL
    linked_entity: LinkedEntity | None = None
    recipients: list[str] | None = None
    exclude: list[str] = field(default_factory=list)
    action_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None
    actor_id: str | None = None
    rate_limit_per_minute: int | None = None


@dataclass(frozen=True)
class NotificationCursor:
    """Keyset position: the (created_at, notification_id) of the last row served."""

    created_at: datetime
    notification_id: str

    def encode(self) -> str:
        payload = json.dumps({"t": self.created_at.isoformat(), "id": self.notification_id})
        return base64.urlsafe_b64encode(payload.encode()).decode().rstrip("=")

    @classmethod
    def decode(cls, token: str) -> NotificationCursor:
        try:
            padded = token + "=" * (-len(token) % 4)
            payload = json.loads(base64.urlsafe_b64decode(padded.encode()))
            created_at = datetime.fromisoformat(payload["t"])
            notification_id = payload["id"]
        except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
            raise InvalidCursorError(token) from e
        if created_at.tzinfo is None or not isinstance(notification_id, str):
            raise InvalidCursorError(token)
        return cls(created_at=created_at, notification_id=notification_id)


@dataclass
class DomainNotificationPage:
    items: list[DomainNotification]
    next_cursor: str | None
    has_more: bool


@dataclass
class DomainNotificationDigest:
    """One email summarising a user's unread notifications for a digest period."""

    digest_id: str
    user_id: str
    workspace_id: str | None
    frequency: EmailDigestFrequency
    period_start: datetime
    period_end: datetime
    notifications: list[DomainNotification] = field(default_factory=list)


@dataclass
class RetrySweepResult:
    claimed: int = 0
    delivered: int = 0
    failed: int = 0
    exhausted: int = 0
    deferred: int = 0


@dataclass
class MaintenanceTaskResult:
    task: MaintenanceTask
    success: bool
    affected: int = 0
    duration_ms: float = 0.0
    error: str | None = None
