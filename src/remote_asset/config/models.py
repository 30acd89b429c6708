from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 7


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Empty path disables file logging.
    path: str = ""
    rotation: FileRotationSettings = Field(default_factory=FileRotationSettings)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    file: FileLoggingSettings = Field(default_factory=FileLoggingSettings)


class RemoteAssetSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    remote_url: str

    # Bundled file the cache is seeded from. Callers without a file pass bytes instead.
    base_path: Optional[str] = None

    cache_dir: Optional[str] = None
    cache_file_name: Optional[str] = None
    app_version: Optional[str] = None

    auto_refresh_interval_seconds: Optional[float] = Field(default=None, gt=0)
    refresh_on_init: bool = True
    fetch_timeout_seconds: float = Field(default=60.0, gt=0)

    skip_materialize_if_unchanged_and_exists_at: Optional[str] = None


class AppConfig(BaseModel):
    """Effective runtime configuration after applying all precedence rules."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    asset: RemoteAssetSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    Implementations may use these to control where configuration is read from.
    """

    yaml_path: str = "config.yaml"
    env_prefix: str = "APP__"
    dotenv_path: Optional[str] = ".env"
