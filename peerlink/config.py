"""
Application settings loaded from the environment via Pydantic Settings.
"""

from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Signaling server configuration"""

    model_config = SettingsConfigDict(env_prefix="PEERLINK_", extra="ignore", populate_by_name=True)

    host: str = Field(default="0.0.0.0", description="Interface to bind")
    # Hosting platforms usually hand the port over as plain PORT
    port: int = Field(
        default=8080,
        validation_alias=AliasChoices("PEERLINK_PORT", "PORT"),
        description="TCP port to listen on"
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    reload: bool = Field(default=False, description="Enable uvicorn auto-reload")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    notify_reported_peer: bool = Field(
        default=True,
        description="Send report_received to a peer that has just been reported"
    )
    report_history_size: int = Field(default=1000, ge=1, description="Reports kept in memory")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: '{v}'")
        return level


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings instance."""
    return Settings()
