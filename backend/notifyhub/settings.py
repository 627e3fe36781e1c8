import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Settings(BaseModel):
    """Application settings loaded from TOML configuration files.

    All config is read from TOML, no environment variables, no .env files.

    Load order (each layer overrides the previous):
        1. config_path    - base settings (committed to git)
        2. secrets_path   - sensitive overrides (gitignored)
        3. override_path  - per-worker overrides (SERVICE_NAME, sweep cadence, etc.)

    Usage:
        Settings()                                                 # config.toml + secrets
        Settings(config_path="config.test.toml")                   # test config
        Settings(override_path="config.scheduler.toml")            # base + secrets + worker
    """

    model_config = ConfigDict(extra="forbid")

    def __init__(
        self,
        config_path: str = "config.toml",
        override_path: str | None = None,
        secrets_path: str = "secrets.toml",
    ) -> None:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        if Path(secrets_path).is_file():
            with open(secrets_path, "rb") as f:
                data |= tomllib.load(f)
        if override_path:
            with open(override_path, "rb") as f:
                data |= tomllib.load(f)
        super().__init__(**data)

    PROJECT_NAME: str = "notifyhub"
    DATABASE_NAME: str = "notifyhub_db"
    API_V1_STR: str = "/api/v1"
    MONGODB_URL: str = "mongodb://mongo:27017/notifyhub"

    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    TESTING: bool = False

    # Redis Configuration
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None
    REDIS_SSL: bool = False
    REDIS_MAX_CONNECTIONS: int = 200
    REDIS_DECODE_RESPONSES: Literal[True] = True

    # Workspace rate limiting (fixed one-minute windows)
    NOTIF_RATE_LIMIT_PER_MINUTE: int = Field(default=100, ge=1)
    NOTIF_RATE_LIMIT_CEILING_PER_MINUTE: int = Field(default=10_000, ge=1)
    NOTIF_RATE_LIMIT_RETENTION_MINUTES: int = 5

    # Delivery and retry
    NOTIF_MAX_DELIVERY_ATTEMPTS: int = Field(default=5, ge=1)
    NOTIF_BACKOFF_CAP_SECONDS: int = 1024
    NOTIF_RETRY_BATCH_SIZE: int = 100
    NOTIF_RETRY_INTERVAL_SECONDS: int = 30
    NOTIF_DELIVERY_TIMEOUT_SECONDS: float = 10.0
    NOTIF_CLAIM_LEASE_SECONDS: int = 300
    NOTIF_URGENT_RESPECTS_CATEGORY_OPT_OUT: bool = True
    NOTIF_DEFAULT_TTL_DAYS: int | None = None

    # Retention
    NOTIF_ARCHIVE_AFTER_DAYS: int = 30
    NOTIF_AUDIT_RETENTION_DAYS: int = 365
    NOTIF_MAINTENANCE_INTERVAL_SECONDS: int = 300
    NOTIF_ADMIN_USER_IDS: list[str] = Field(default_factory=list)

    # Query
    NOTIF_DEFAULT_PAGE_SIZE: int = 20
    NOTIF_MAX_PAGE_SIZE: int = 100

    # Delivery channels
    NOTIF_PUSH_CHANNEL_PREFIX: str = "notif:user:"
    NOTIF_EMAIL_RELAY_URL: str | None = None
    NOTIF_DIGEST_MAX_ITEMS: int = Field(default=50, ge=1)

    # Service metadata
    SERVICE_NAME: str = "notifyhub-api"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "production"

    # OpenTelemetry Configuration
    ENABLE_METRICS: bool = True
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None

    # Logging configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
