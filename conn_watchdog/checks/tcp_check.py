from __future__ import annotations

import socket
import time

from conn_watchdog.checks.results import ProbeOutcome, one_line


def run_tcp(host: str, count: int, timeout_s: int, port: int = 443) -> ProbeOutcome:
    # One deadline for all attempts.
    deadline = time.monotonic() + timeout_s
    latencies: list[int] = []
    error: str | None = None

    for _ in range(count):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        start = time.perf_counter()
        try:
            with socket.create_connection((host, port), timeout=min(timeout_s, remaining)):
                latencies.append(int((time.perf_counter() - start) * 1000))
        except Exception as e:
            error = one_line(str(e)) or type(e).__name__

    if not latencies:
        return ProbeOutcome(ok=False, error=error or f"timed out after {timeout_s}s")
    return ProbeOutcome(ok=True, latency_ms=sum(latencies) // len(latencies))
