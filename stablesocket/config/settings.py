"""Socket configuration loading and validation."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Literal

import yaml
from pydantic import AnyUrl, Field, PositiveFloat, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/stablesocket/socket.yaml"),
    Path("/etc/stablesocket/socket.yml"),
    Path("./config/socket.yaml"),
    Path("./config/socket.yml"),
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONFIG_FILE_ENV = "STABLE_SOCKET_CONFIG_FILE"


class SocketSettings(BaseSettings):
    """Validated settings for a stable socket client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="STABLE_SOCKET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: AnyUrl = Field(
        default="ws://localhost:7999",
        description="WebSocket endpoint the socket connects to.",
    )
    connect_timeout_seconds: PositiveFloat = Field(
        default=5.0,
        description="Deadline for a single connection attempt.",
    )
    max_attempts: PositiveInt = Field(
        default=5,
        description="Maximum connection attempts per open cycle.",
    )
    max_backoff_delay_seconds: PositiveFloat | None = Field(
        default=None,
        description="Cap on the wait between connection attempts; unbounded when unset.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the socket client.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("url")
    @classmethod
    def _require_ws_scheme(cls, value: AnyUrl) -> AnyUrl:
        if value.scheme not in {"ws", "wss"}:
            raise ValueError(f"url must use ws:// or wss://, got {value.scheme}://")
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[SocketSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            _config_file_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


def _config_file_source() -> Dict[str, Any]:
    """Values from the first config file found, tagged with its path."""

    explicit = os.getenv(CONFIG_FILE_ENV)
    candidates = [Path(explicit).expanduser()] if explicit else []
    for path in [*candidates, *DEFAULT_CONFIG_LOCATIONS]:
        if path.is_file():
            data = _read_yaml(path)
            data.setdefault("config_path", path)
            return data
    return {}


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"Failed to read socket config file {path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Socket config file {path} is not valid YAML") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Socket config file {path} must contain a mapping at top level.")
    return raw


@lru_cache()
def get_settings() -> SocketSettings:
    """Return memoized socket settings."""

    return SocketSettings()


def configure_logging(settings: SocketSettings) -> None:
    """Apply the settings' log level with the shared log line format."""

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
