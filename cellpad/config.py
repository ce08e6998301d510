"""
Runtime settings read from the environment.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CELLPAD_"


class Settings(BaseModel):
    """Settings shared by the kernel, the remote loader and the CLI."""

    fetch_timeout: float = Field(default=30.0, gt=0, description="Seconds before a network call gives up")
    log_level: str = Field(default="WARNING", description="Level for the CLI log handler")
    notebook_url: Optional[str] = Field(default=None, description="Remote document opened when no path is given")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``CELLPAD_*`` variables; unset ones keep their defaults."""
        environ = os.environ if environ is None else environ
        data = {}
        for name in cls.model_fields:
            value = environ.get(ENV_PREFIX + name.upper())
            if value:
                data[name] = value
        return cls(**data)


def get_settings() -> Settings:
    """Return settings for the current process environment."""
    return Settings.from_env()
