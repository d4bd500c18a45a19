from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

FAILED_LATENCY_MS = -1


@dataclass
class ProbeOutcome:
    ok: bool
    latency_ms: int = 0
    error: str | None = None


# (target, count, timeout_s) -> outcome
Prober = Callable[[str, int, int], ProbeOutcome]


@dataclass(frozen=True)
class CheckResult:
    timestamp: datetime
    status: str
    latency_ms: int
    uptime: str
    downtime: str
    message: str
    changes: int


def one_line(text: str) -> str:
    return " ".join(text.split())
