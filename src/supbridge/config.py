"""Centralized configuration: Pydantic BaseSettings with TOML + dotenv sources.

Non-secret settings live in config.toml. The auth session token itself is
never part of the settings: ``sup_chat.auth_session_path`` points at a file
holding it (see :mod:`supbridge.credentials`). Environment variables override
both using ``__`` as the nested delimiter (e.g. ``SUP_CHAT__POLL_INTERVAL``).

Priority (highest wins): init args > env vars > .env > config.toml

Usage::

    from supbridge.config import get_settings

    s = get_settings()
    if s.sup_chat is not None and s.sup_chat.enabled:
        print(s.sup_chat.base_url)
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

DEFAULT_POLL_INTERVAL_MS = 5000

# ---------------------------------------------------------------------------
# Sub-models (each maps to a [section] in config.toml)
# ---------------------------------------------------------------------------


class _StrictModel(BaseModel):
    """Base for all config sub-models; reject unknown keys so typos fail loudly."""

    model_config = {"extra": "forbid"}


class LoggingConfig(_StrictModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()


class SupChatConfig(_StrictModel):
    """The ``[sup_chat]`` section."""

    base_url: str  # e.g. "https://sup.net"; no trailing slash
    auth_session_path: str  # file holding the auth_session cookie; ~ allowed
    client_version: str | None = None  # sent as x-sup-client-version when set
    session_id: str | None = None  # sent as x-sup-session-id when set
    poll_interval: int = DEFAULT_POLL_INTERVAL_MS  # milliseconds
    enabled: bool = False
    request_timeout: float | None = None  # seconds; None → aiohttp default
    ignore_own_messages: bool = False  # drop echoes of bot_user_id's own messages
    seen_capacity: int | None = None  # None → remember every id for the loop's lifetime

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("base_url must not be empty")
        return v.rstrip("/")

    @field_validator("auth_session_path")
    @classmethod
    def validate_auth_session_path(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("auth_session_path must not be empty")
        return v

    @field_validator("poll_interval")
    @classmethod
    def validate_poll_interval(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("poll_interval must be a positive number of milliseconds")
        return v

    @field_validator("seen_capacity")
    @classmethod
    def validate_seen_capacity(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("seen_capacity must be a positive integer")
        return v

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval / 1000


# ---------------------------------------------------------------------------
# Root Settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        toml_file="config.toml",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    logging: LoggingConfig = LoggingConfig()
    sup_chat: SupChatConfig | None = None  # None → integration not configured
    bot_user_id: str | None = None  # self identity for mention matching

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init > env vars > .env > config.toml > file secrets."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Settings | None = None


def get_settings() -> Settings:
    """Lazy cached singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for tests)."""
    global _settings
    _settings = None
