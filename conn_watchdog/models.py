from __future__ import annotations

from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

ProbeType = Literal["ping", "tcp", "http"]


class MonitorConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ping_target: str = Field(default="8.8.8.8", min_length=1)
    check_interval: int = Field(default=30, gt=0)
    log_file: str = Field(default="connection_log.csv", min_length=1)
    ping_count: int = Field(default=3, gt=0)
    ping_timeout: int = Field(default=5, gt=0)
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8080, ge=0, le=65535)
    probe: ProbeType = "ping"
    probe_port: int = Field(default=443, ge=1, le=65535)
    shutdown_timeout: float = Field(default=5.0, gt=0)
