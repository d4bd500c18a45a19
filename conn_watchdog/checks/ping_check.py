"""ICMP reachability check via the system ping utility.

Command line and output grammar differ per platform:

- Linux/BSD: ``ping -c <count> -W <seconds> -w <seconds> <host>``,
  summary ``rtt min/avg/max/mdev = 0.026/0.031/0.040/0.005 ms``
- macOS: ``-W`` takes milliseconds, ``-t`` is the overall deadline in seconds,
  summary ``round-trip min/avg/max/stddev = 9.1/10.4/12.0/1.1 ms``
- Windows: ``ping -n <count> -w <milliseconds> <host>``,
  summary ``Minimum = 9ms, Maximum = 12ms, Average = 10ms``
"""

from __future__ import annotations

import re
import subprocess
import sys

from conn_watchdog.checks.results import ProbeOutcome, one_line

_UNIX_AVG = re.compile(r"min/avg/max/[^=]+=\s*[0-9.]+/([0-9.]+)/")
_WINDOWS_AVG = re.compile(r"Average\s*=\s*(\d+)ms")
_UNIX_RECEIVED = re.compile(r"(\d+)\s+(?:packets\s+)?received")
_WINDOWS_RECEIVED = re.compile(r"Received\s*=\s*(\d+)")

# ping is given its own deadline; the subprocess limit only backs it up.
_DEADLINE_MARGIN_S = 1


def _is_windows(platform: str) -> bool:
    return platform.startswith("win")


def build_ping_args(
    host: str, count: int, timeout_s: int, platform: str | None = None
) -> list[str]:
    platform = platform or sys.platform
    if _is_windows(platform):
        return ["ping", "-n", str(count), "-w", str(timeout_s * 1000), host]
    if platform.startswith("darwin"):
        # macOS: -W is wait time in milliseconds per reply
        return [
            "ping", "-c", str(count), "-W", str(timeout_s * 1000), "-t", str(timeout_s), host
        ]
    return ["ping", "-c", str(count), "-W", str(timeout_s), "-w", str(timeout_s), host]


def parse_latency(output: str, platform: str | None = None) -> int:
    platform = platform or sys.platform
    pattern = _WINDOWS_AVG if _is_windows(platform) else _UNIX_AVG
    match = pattern.search(output)
    if not match:
        return 0
    whole = match.group(1).split(".")[0]
    try:
        return int(whole)
    except ValueError:
        return 0


def parse_received(output: str, platform: str | None = None) -> int:
    platform = platform or sys.platform
    pattern = _WINDOWS_RECEIVED if _is_windows(platform) else _UNIX_RECEIVED
    match = pattern.search(output)
    return int(match.group(1)) if match else 0


def _failure_cause(returncode: int, output: str) -> str:
    cause = f"Error: exit status {returncode}"
    lines = [line for line in output.splitlines() if line.strip()]
    if lines:
        cause = f"{cause} ({one_line(lines[-1])})"
    return cause


def run_ping(
    host: str, count: int, timeout_s: int, platform: str | None = None
) -> ProbeOutcome:
    args = build_ping_args(host, count, timeout_s, platform=platform)
    try:
        result = subprocess.run(
            args,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout_s + _DEADLINE_MARGIN_S,
        )
    except subprocess.TimeoutExpired:
        return ProbeOutcome(ok=False, error=f"ping timed out after {timeout_s}s")
    except OSError as e:
        return ProbeOutcome(ok=False, error=one_line(str(e)))

    output = (result.stdout or "") + (result.stderr or "")
    # With -w/-t, ping exits non-zero when the deadline cuts the run short,
    # even if some replies arrived.
    if result.returncode != 0 and parse_received(output, platform=platform) == 0:
        return ProbeOutcome(ok=False, error=_failure_cause(result.returncode, output))

    return ProbeOutcome(ok=True, latency_ms=parse_latency(output, platform=platform))
