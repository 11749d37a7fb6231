from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .backup import DEFAULT_BACKUP_SUFFIX

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class SessionSettings(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    backup_suffix: str = Field(default=DEFAULT_BACKUP_SUFFIX, min_length=1)
    region_ext: str = Field(default="mca", min_length=1)
    resume: bool = False
    reset_on_exit: bool = False
    log_level: str = "INFO"

    @field_validator("backup_suffix")
    @classmethod
    def validate_backup_suffix(cls, value: str) -> str:
        if "/" in value or "\\" in value:
            raise ValueError("Backup suffix must not contain path separators")
        return value

    @field_validator("region_ext")
    @classmethod
    def validate_region_ext(cls, value: str) -> str:
        value = value.lstrip(".")
        if not value.isalnum():
            raise ValueError("Region extension must be alphanumeric, e.g. 'mca'")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in _LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return value

    @classmethod
    def from_env(cls) -> "SessionSettings":
        return cls(
            backup_suffix=os.environ.get("LANDGEN_BACKUP_SUFFIX", DEFAULT_BACKUP_SUFFIX),
            region_ext=os.environ.get("LANDGEN_REGION_EXT", "mca"),
            resume=_env_flag("LANDGEN_RESUME"),
            reset_on_exit=_env_flag("LANDGEN_RESET_ON_EXIT"),
            log_level=os.environ.get("LANDGEN_LOG_LEVEL", "INFO"),
        )
