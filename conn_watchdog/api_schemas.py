from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(description="Health status")


class ConfigResponse(BaseModel):
    ping_target: str
    probe: str
    check_interval: int = Field(ge=1)
    ping_count: int = Field(ge=1)
    ping_timeout: int = Field(ge=1)
    log_file: str


# One log row, keyed by CSV column; ragged rows may lack some keys.
ConnectionDataRow = dict[str, str]
