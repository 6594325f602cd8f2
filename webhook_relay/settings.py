from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=True, env_file=".env", extra="ignore"
    )

    SERVICE_NAME: str = "Webhook Relay"
    ENVIRONMENT: str = "development"

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = 3333

    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Stale-data suppression windows (seconds)
    CONNECT_IGNORE_SECONDS: float = 5.0
    CLEAR_SESSION_IGNORE_SECONDS: float = 10.0

    # Per-connection outbound queue bound
    OUTBOX_MAX_SIZE: int = 256

    # Number of webhook id characters shown in status listings
    WEBHOOK_ID_PREVIEW_LENGTH: int = 8

    # Number of alert payload characters echoed in logs
    ALERT_LOG_PREVIEW_LENGTH: int = 200

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/logging_errors.log"
    # Paths to exclude from access logs (e.g., /metrics, /health)
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]

    # Loki settings
    LOKI_ENABLED: bool = False
    LOKI_URL: str = "http://loki:3100"
    LOKI_VERSION: str = "1"

    @field_validator("CONNECT_IGNORE_SECONDS", "CLEAR_SESSION_IGNORE_SECONDS")
    @classmethod
    def validate_window(cls, v: float) -> float:
        """Ignore windows cannot be negative."""
        if v < 0:
            raise ValueError("ignore window must be >= 0 seconds")
        return v

    @field_validator("OUTBOX_MAX_SIZE")
    @classmethod
    def validate_outbox_size(cls, v: int) -> int:
        """A zero-sized asyncio.Queue would be unbounded."""
        if v < 1:
            raise ValueError("OUTBOX_MAX_SIZE must be >= 1")
        return v


app_settings = Settings()
