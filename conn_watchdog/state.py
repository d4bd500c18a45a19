from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import NamedTuple

from conn_watchdog.formatting import format_duration


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class MonotonicClock:
    """Wall-clock anchored at creation, advanced by time.monotonic()."""

    def __init__(self) -> None:
        self._wall = now_utc()
        self._mono = time.monotonic()

    def __call__(self) -> datetime:
        return self._wall + timedelta(seconds=time.monotonic() - self._mono)


class Status(str, Enum):
    UNKNOWN = "UNKNOWN"
    UP = "UP"
    DOWN = "DOWN"


class Evaluation(NamedTuple):
    status: Status
    message: str
    uptime: str
    downtime: str


ZERO = timedelta(0)


@dataclass
class ConnectionState:
    """
    Last known connection status plus the bookkeeping needed to report
    how long the link has been up or down.

    Owned by a single worker; evaluate() is not thread safe.
    """

    status: Status = Status.UNKNOWN
    last_status_time: datetime | None = None
    last_up_time: datetime | None = None
    last_down_time: datetime | None = None
    current_uptime: timedelta = ZERO
    previous_uptime: timedelta = ZERO
    previous_downtime: timedelta = ZERO
    connection_changes: int = 0

    @staticmethod
    def _since(start: datetime | None, now: datetime) -> timedelta:
        if start is None:
            return ZERO
        return now - start

    def evaluate(self, probe_succeeded: bool, now: datetime) -> Evaluation:
        if self.last_status_time is not None and now < self.last_status_time:
            raise ValueError("check timestamps must not go backwards")

        if probe_succeeded:
            new_status = Status.UP
            if self.status in (Status.DOWN, Status.UNKNOWN):
                self.last_up_time = now
                self.previous_downtime = self._since(self.last_down_time, now)
                self.connection_changes += 1
                message = (
                    "Connection restored after "
                    f"{format_duration(self.previous_downtime)} downtime"
                )
            else:
                self.current_uptime = self._since(self.last_up_time, now)
                message = "Connection stable"

            uptime = format_duration(self._since(self.last_up_time, now))
            downtime = format_duration(self.previous_downtime)
        else:
            new_status = Status.DOWN
            if self.status in (Status.UP, Status.UNKNOWN):
                self.last_down_time = now
                self.previous_uptime = self._since(self.last_up_time, now)
                self.connection_changes += 1
                message = (
                    "Connection lost after "
                    f"{format_duration(self.previous_uptime)} uptime"
                )
            else:
                self.current_uptime = ZERO
                message = "Connection still down"

            uptime = format_duration(self.previous_uptime)
            downtime = format_duration(self._since(self.last_down_time, now))

        self.status = new_status
        self.last_status_time = now
        return Evaluation(status=new_status, message=message, uptime=uptime, downtime=downtime)
