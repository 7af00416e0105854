from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    DB_APPLICATION_NAME: str = "field-chat"
    DB_ECHO: bool = False

    REDIS_URL: str = "redis://localhost:6379/0"
    # Approximate cap applied on every XADD
    STREAM_MAXLEN: int = 100_000
    # Pending entries idle this long are reclaimed from crashed consumers
    STREAM_CLAIM_IDLE_MS: int = 60_000
    STREAM_MAX_DELIVERIES: int = 5

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] = ["*"]

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    OUTBOX_POLL_INTERVAL: float = 1.0
    OUTBOX_BATCH_SIZE: int = 50
    OUTBOX_MAX_ATTEMPTS: int = 5

    # Outbox events fan out to these streams by event_type prefix
    CHAT_EVENTS_STREAM: str = "chat.events"
    MEDIA_JOBS_STREAM: str = "media.jobs"

    # Post-processing workers report back here
    MEDIA_EVENTS_STREAM: str = "media.events"
    MEDIA_EVENTS_GROUP: str = "field-chat"

    STORAGE_BACKEND: Literal["local", "s3"] = "local"
    LOCAL_STORAGE_ROOT: str = "./var/media"
    STORAGE_PUBLIC_BASE_URL: str | None = None
    S3_BUCKET: str | None = None
    S3_PREFIX: str = ""
    S3_REGION: str | None = None

    TIMELINE_DEFAULT_TZ: str = "UTC"
    TIMELINE_MAX_MESSAGES: int = 500

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
