"""Request/response models for the notification API and the push payload"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notifyhub.domain.enums import (
    AuditAction,
    DeliveryStatus,
    EmailDigestFrequency,
    MaintenanceTask,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)
from notifyhub.domain.notification import DomainNotification, DomainNotificationDigest, categories_for


class NotificationResponse(BaseModel):
    """Response schema for a single notification"""
    notification_id: str
    workspace_id: str
    event_type: str
    title: str
    body: str
    priority: NotificationPriority
    categories: list[NotificationCategory] = Field(default_factory=list)
    entity_type: str | None = None
    entity_id: str | None = None
    action_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    read: bool
    read_at: datetime | None = None
    delivery_status: DeliveryStatus
    delivered_at: datetime | None = None
    delivered_channels: list[NotificationChannel] = Field(default_factory=list)
    seen_at: datetime | None = None
    acknowledged_at: datetime | None = None
    archived: bool = False
    expires_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(
        from_attributes=True
    )

    @classmethod
    def from_domain(cls, notification: DomainNotification) -> NotificationResponse:
        response = cls.model_validate(notification)
        response.categories = categories_for(notification.event_type)
        return response


class NotificationListResponse(BaseModel):
    """One keyset page; pass ``next_cursor`` back to continue"""
    items: list[NotificationResponse]
    next_cursor: str | None = None
    has_more: bool = False


class UnreadCountResponse(BaseModel):
    unread_count: int


class TransitionResponse(BaseModel):
    """``changed`` is False when the call was a no-op (already in that state)"""
    notification_id: str
    changed: bool


class MarkAllReadResponse(BaseModel):
    updated: int


class DeleteNotificationResponse(BaseModel):
    message: str = "Notification deleted"


class LinkedEntitySchema(BaseModel):
    entity_type: str = Field(..., min_length=1)
    entity_id: str = Field(..., min_length=1)


class DispatchNotificationRequest(BaseModel):
    """Request schema for announcing a workspace event"""
    event_type: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=500)
    body: str = Field("", max_length=10_000)
    priority: NotificationPriority = NotificationPriority.NORMAL
    linked_entity: LinkedEntitySchema | None = None
    recipients: list[str] | None = None
    exclude: list[str] = Field(default_factory=list)
    action_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime | None = None
    rate_limit_per_minute: int | None = Field(None, ge=1)

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            raise ValueError("expires_at must include a timezone offset")
        return v


class DispatchNotificationResponse(BaseModel):
    notification_ids: list[str]
    created: int


class AuditEntryResponse(BaseModel):
    entry_id: str
    action: AuditAction
    notification_id: str | None = None
    user_id: str | None = None
    workspace_id: str
    previous_status: DeliveryStatus | None = None
    new_status: DeliveryStatus | None = None
    detail: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(
        from_attributes=True
    )


class MaintenanceRequest(BaseModel):
    tasks: list[MaintenanceTask] | None = None


class MaintenanceTaskResponse(BaseModel):
    task: MaintenanceTask
    success: bool
    affected: int = 0
    duration_ms: float = 0.0
    error: str | None = None

    model_config = ConfigDict(
        from_attributes=True
    )


class MaintenanceResponse(BaseModel):
    results: list[MaintenanceTaskResponse]


class NotificationPushMessage(BaseModel):
    """Payload published on the user's Redis channel for live in-app delivery"""
    type: str = "notification"
    notification_id: str
    user_id: str
    workspace_id: str
    event_type: str
    title: str
    body: str
    priority: NotificationPriority
    entity_type: str | None = None
    entity_id: str | None = None
    action_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_domain(cls, notification: DomainNotification) -> NotificationPushMessage:
        return cls(
            notification_id=notification.notification_id,
            user_id=notification.user_id,
            workspace_id=notification.workspace_id,
            event_type=notification.event_type,
            title=notification.title,
            body=notification.body,
            priority=notification.priority,
            entity_type=notification.entity_type,
            entity_id=notification.entity_id,
            action_url=notification.action_url,
            metadata=notification.metadata,
            created_at=notification.created_at,
        )


class NotificationDigestMessage(BaseModel):
    """Batch of unread notifications handed to the email relay for a daily or weekly digest"""
    type: str = "digest"
    digest_id: str
    user_id: str
    workspace_id: str | None = None
    frequency: EmailDigestFrequency
    period_start: datetime
    period_end: datetime
    notifications: list[NotificationPushMessage]

    @classmethod
    def from_domain(cls, digest: DomainNotificationDigest) -> NotificationDigestMessage:
        return cls(
            digest_id=digest.digest_id,
            user_id=digest.user_id,
            workspace_id=digest.workspace_id,
            frequency=digest.frequency,
            period_start=digest.period_start,
            period_end=digest.period_end,
            notifications=[NotificationPushMessage.from_domain(n) for n in digest.notifications],
        )
