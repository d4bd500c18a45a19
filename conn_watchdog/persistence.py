from __future__ import annotations

import csv
import logging
from pathlib import Path

from conn_watchdog.checks.results import CheckResult
from conn_watchdog.formatting import format_timestamp

logger = logging.getLogger(__name__)

LOG_COLUMNS = (
    "timestamp",
    "status",
    "latency",
    "uptime",
    "downtime",
    "total_changes",
    "message",
)
LOG_HEADER = ",".join(LOG_COLUMNS) + "\n"


class LogReadError(Exception):
    pass


def resolve_log_path(raw_path: str | Path) -> Path:
    p = Path(raw_path).expanduser()
    if p.is_absolute():
        return p
    return Path.cwd() / p


def ensure_log(path: Path) -> None:
    """Create the log with its header row. An existing file is left untouched."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("x", encoding="utf-8", newline="") as f:
            f.write(LOG_HEADER)
    except FileExistsError:
        return
    logger.info("Created log file: %s", path)


def format_row(result: CheckResult) -> str:
    # message already has its quotes doubled by the executor
    return (
        f"{format_timestamp(result.timestamp)},{result.status},"
        f"{result.latency_ms},{result.uptime},{result.downtime},"
        f'{result.changes},"{result.message}"\n'
    )


def append_result(path: Path, result: CheckResult) -> None:
    # Reopened per row so a crash can only damage the last record.
    with path.open("a", encoding="utf-8", newline="") as f:
        f.write(format_row(result))


def read_log(path: Path) -> list[dict[str, str]]:
    """
    Parse the whole log, oldest row first.

    Rows are zipped against the header: surplus fields are dropped and
    missing ones are simply absent from the row mapping. A file that is
    empty or holds only the header yields an empty list.
    """
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            rows = [row for row in csv.reader(f) if row]
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise LogReadError(f"unable to read log file {path}: {e}") from e

    if len(rows) <= 1:
        return []

    header = rows[0]
    return [dict(zip(header, row)) for row in rows[1:]]
