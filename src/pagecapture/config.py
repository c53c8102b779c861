"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PAGECAPTURE__CACHE__SHARE_BETWEEN_REQUESTS=true)
  2. pagecapture.yaml       (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from pagecapture.inheritance import DEFAULT_MAX_INHERITANCE_DEPTH

_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("pagecapture")


def _find_config_file() -> str | None:
    """Return the path of the first pagecapture.yaml found, or None."""
    candidates = [
        Path("pagecapture.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "pagecapture.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class CacheSettings(BaseModel):
    # One cache for the whole process instead of one per request
    share_between_requests: bool = False
    # Per-request caches must tolerate subrequests running on worker threads
    concurrent_subrequests: bool = True
    verify_parent_child: bool = True


class CaptureSettings(BaseModel):
    max_inheritance_depth: int = Field(default=DEFAULT_MAX_INHERITANCE_DEPTH, ge=1)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PAGECAPTURE__LOGGING__LEVEL=DEBUG
        env_prefix="PAGECAPTURE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    cache: CacheSettings = CacheSettings()
    capture: CaptureSettings = CaptureSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
