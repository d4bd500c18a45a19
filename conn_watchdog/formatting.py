from __future__ import annotations

from datetime import datetime, timedelta, timezone


def format_duration(d: timedelta | int | float) -> str:
    """
    Render a duration as "45s", "2m5s" or "1h0m3s".
    Anything under one second is "0s"; negative durations are rejected.
    """
    seconds = d.total_seconds() if isinstance(d, timedelta) else float(d)
    if seconds < 0:
        raise ValueError(f"cannot format negative duration: {d!r}")
    if seconds < 1:
        return "0s"

    # Half away from zero, not banker's rounding.
    total = int(seconds + 0.5)

    if total < 60:
        return f"{total}s"
    if total < 3600:
        m, s = divmod(total, 60)
        return f"{m}m{s}s"
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h}h{m}m{s}s"


def format_timestamp(dt: datetime) -> str:
    return (
        dt.astimezone(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )
