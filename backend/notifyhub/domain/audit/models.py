from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from notifyhub.domain.enums import AuditAction, DeliveryStatus


@dataclass
class AuditLogEntry:
    action: AuditAction
    workspace_id: str
    created_at: datetime
    notification_id: str | None = None
    user_id: str | None = None
    previous_status: DeliveryStatus | None = None
    new_status: DeliveryStatus | None = None
    detail: dict[str, Any] = field(default_factory=dict)
    entry_id: str = field(default_factory=lambda: str(uuid4()))
