import contextvars
import json
import logging
import re
from datetime import UTC, datetime
from typing import Any

correlation_id_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id",
    default=None
)

request_metadata_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "request_metadata",
    default=None
)

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_SENSITIVE_PATTERNS = [
    (r'(["\']?(?:api[_-]?)?(?:key|token|secret|password|passwd|pwd)["\']?\s*[:=]\s*["\']?)([^"\']+)(["\']?)',
     r"\1***API_KEY_OR_TOKEN_REDACTED***\3"),
    (r"(Bearer\s+)([A-Za-z0-9\-_]+)", r"\1***BEARER_TOKEN_REDACTED***"),
    (r"(mongodb(?:\+srv)?://[^:]+:)([^@]+)(@)", r"\1***MONGODB_REDACTED***\3"),
    (r"(redis(?:s)?://[^:]*:)([^@]+)(@)", r"\1***REDIS_REDACTED***\3"),
    (r"(https?://[^:]+:)([^@]+)(@)", r"\1***URL_CREDS_REDACTED***\3"),
]


class CorrelationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = correlation_id_context.get()
        if correlation_id:
            record.correlation_id = correlation_id

        metadata = request_metadata_context.get()
        if metadata:
            record.request_method = metadata.get("method")
            record.request_path = metadata.get("path")

        return True


class JSONFormatter(logging.Formatter):
    def _sanitize_sensitive_data(self, data: str) -> str:
        """Mask credentials and tokens before they reach the log sink."""
        for pattern, replacement in _SENSITIVE_PATTERNS:
            data = re.sub(pattern, replacement, data, flags=re.IGNORECASE)
        return data

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._sanitize_sensitive_data(record.getMessage()),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            log_data[key] = value

        if record.exc_info:
            exc_text = self.formatException(record.exc_info)
            log_data["exc_info"] = self._sanitize_sensitive_data(exc_text)

        if record.stack_info:
            log_data["stack_info"] = self._sanitize_sensitive_data(self.formatStack(record.stack_info))

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logger(log_level: str) -> logging.Logger:
    logger = logging.getLogger("notifyhub")
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(JSONFormatter())
    console_handler.addFilter(CorrelationFilter())

    logger.addHandler(console_handler)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.propagate = False

    return logger
