from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from conn_watchdog.models import MonitorConfig

load_dotenv()


class Settings:
    WATCHDOG_PING_TARGET: str | None = os.getenv("WATCHDOG_PING_TARGET")
    WATCHDOG_CHECK_INTERVAL: str | None = os.getenv("WATCHDOG_CHECK_INTERVAL")
    WATCHDOG_LOG_FILE: str | None = os.getenv("WATCHDOG_LOG_FILE")
    WATCHDOG_PING_COUNT: str | None = os.getenv("WATCHDOG_PING_COUNT")
    WATCHDOG_PING_TIMEOUT: str | None = os.getenv("WATCHDOG_PING_TIMEOUT")
    WATCHDOG_API_HOST: str | None = os.getenv("WATCHDOG_API_HOST")
    WATCHDOG_API_PORT: str | None = os.getenv("WATCHDOG_API_PORT")
    WATCHDOG_PROBE: str | None = os.getenv("WATCHDOG_PROBE")
    WATCHDOG_PROBE_PORT: str | None = os.getenv("WATCHDOG_PROBE_PORT")
    WATCHDOG_SHUTDOWN_TIMEOUT: str | None = os.getenv("WATCHDOG_SHUTDOWN_TIMEOUT")
    WATCHDOG_LOG_LEVEL: str = os.getenv("WATCHDOG_LOG_LEVEL", "INFO")

    def as_overrides(self) -> dict[str, Any]:
        """Config fields that are set in the environment, still as raw strings."""
        out: dict[str, Any] = {}
        for field in MonitorConfig.model_fields:
            value = getattr(self, f"WATCHDOG_{field.upper()}", None)
            if value is not None and value != "":
                out[field] = value
        return out


settings = Settings()


def load_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Missing config file at {path}")

    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    # Accept both ping-target and ping_target spellings.
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def load_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    env: Settings | None = None,
) -> MonitorConfig:
    """
    Merge defaults < environment < config file < explicit overrides
    and validate the result. Raises pydantic.ValidationError on bad values.
    """
    env = env or settings
    merged: dict[str, Any] = env.as_overrides()
    if path is not None:
        merged.update(load_config_file(path))
    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})
    return MonitorConfig.model_validate(merged)
