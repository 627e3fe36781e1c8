from notifyhub.domain.audit.models import AuditLogEntry

__all__ = ["AuditLogEntry"]
