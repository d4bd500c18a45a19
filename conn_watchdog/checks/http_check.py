from __future__ import annotations

import time
import requests

from conn_watchdog.checks.results import ProbeOutcome, one_line


def normalize_url(target: str) -> str:
    if "://" in target:
        return target
    return f"http://{target}"


def run_http(target: str, count: int, timeout_s: int) -> ProbeOutcome:
    url = normalize_url(target)
    # One deadline for all attempts.
    deadline = time.monotonic() + timeout_s
    latencies: list[int] = []
    error: str | None = None

    for _ in range(count):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        attempt_timeout = min(timeout_s, remaining)
        start = time.perf_counter()
        try:
            r = requests.get(url, timeout=(attempt_timeout, attempt_timeout))
        except Exception as e:
            error = one_line(str(e)) or type(e).__name__
            continue
        if 200 <= r.status_code < 400:
            latencies.append(int((time.perf_counter() - start) * 1000))
        else:
            error = f"HTTP {r.status_code}"

    if not latencies:
        return ProbeOutcome(ok=False, error=error or f"timed out after {timeout_s}s")
    return ProbeOutcome(ok=True, latency_ms=sum(latencies) // len(latencies))
