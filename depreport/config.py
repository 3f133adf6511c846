"""Report configuration."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


class ReportConfig(BaseModel):
    """Settings for one report run.

    Environment variables (read by :meth:`from_env`):
        DEPREPORT_LOCALE          : number formatting locale (default: en)
        DEPREPORT_LOCAL_REPOSITORY: local repository directory (default: ~/.m2/repository)
        DEPREPORT_PROBE_TIMEOUT   : seconds per repository request (default: none)
        DEPREPORT_DETAILS         : render the file details section (default: true)
        DEPREPORT_LOCATIONS       : render the repository locations section (default: true)
    """

    model_config = ConfigDict(validate_default=True)

    locale: str = "en"
    details_enabled: bool = True
    locations_enabled: bool = True
    local_repository: Path = Path("~/.m2/repository")
    probe_timeout: float | None = None

    @field_validator("local_repository", mode="after")
    @classmethod
    def _expand_home(cls, v: Path) -> Path:
        return v.expanduser()

    @field_validator("probe_timeout", mode="after")
    @classmethod
    def _positive_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("probe_timeout must be positive")
        return v

    @classmethod
    def from_env(cls, **overrides: object) -> ReportConfig:
        """Build from environment variables; non-None *overrides* win."""
        values: dict[str, object] = {
            "locale": os.environ.get("DEPREPORT_LOCALE", "en"),
            "details_enabled": _env_flag("DEPREPORT_DETAILS", True),
            "locations_enabled": _env_flag("DEPREPORT_LOCATIONS", True),
            "local_repository": os.environ.get(
                "DEPREPORT_LOCAL_REPOSITORY", "~/.m2/repository"
            ),
        }
        timeout = os.environ.get("DEPREPORT_PROBE_TIMEOUT")
        if timeout:
            values["probe_timeout"] = float(timeout)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
