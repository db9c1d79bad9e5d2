from __future__ import annotations

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SIGNING_SECRET = "session-service-dev-secret"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SESSIONS_", env_file=".env", extra="ignore")

    # Service
    SERVICE_NAME: str = "session-service"
    ENV: str = "local"
    PORT: int = 3019
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=list)  # env value is a JSON list

    # Cookie
    COOKIE_NAME: str = Field(default="connect.sid")
    COOKIE_DOMAIN: Optional[str] = Field(default=None)
    COOKIE_SECURE: bool = Field(default=False)
    COOKIE_SAMESITE: str = Field(default="lax")
    MAX_AGE_SECONDS: int = Field(default=60 * 60 * 24, gt=0)

    # Signing / ids
    SIGNING_SECRET: str = Field(default=DEFAULT_SIGNING_SECRET, min_length=1)
    SIGNING_SALT: str = Field(default="session-id")
    ID_ENTROPY_BYTES: int = Field(default=24, ge=16)

    # Save policy
    ROLLING: bool = False              # sliding expiration: every request pushes expiry forward
    RESAVE: bool = False               # write unchanged sessions back on every request
    SAVE_UNINITIALIZED: bool = False   # create a session for every anonymous request

    # Store
    SWEEP_INTERVAL_SECONDS: float = 60.0  # <= 0 disables the background sweep
    MAX_SESSIONS: Optional[int] = Field(default=None, gt=0)

    @property
    def uses_default_secret(self) -> bool:
        return self.SIGNING_SECRET == DEFAULT_SIGNING_SECRET


settings = Settings()
