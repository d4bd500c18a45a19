from __future__ import annotations

import functools
import logging
import queue
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable

from conn_watchdog.checks.http_check import run_http
from conn_watchdog.checks.ping_check import run_ping
from conn_watchdog.checks.results import FAILED_LATENCY_MS, CheckResult, Prober
from conn_watchdog.checks.tcp_check import run_tcp
from conn_watchdog.formatting import format_timestamp
from conn_watchdog.models import MonitorConfig
from conn_watchdog.persistence import append_result
from conn_watchdog.state import ConnectionState, MonotonicClock

logger = logging.getLogger(__name__)

_STOP = object()


def build_prober(config: MonitorConfig) -> Prober:
    if config.probe == "tcp":
        return functools.partial(run_tcp, port=config.probe_port)
    if config.probe == "http":
        return run_http
    return run_ping


def run_check(
    config: MonitorConfig,
    state: ConnectionState,
    prober: Prober,
    now: datetime,
) -> CheckResult:
    outcome = prober(config.ping_target, config.ping_count, config.ping_timeout)
    evaluation = state.evaluate(outcome.ok, now)

    if outcome.ok:
        latency_ms = outcome.latency_ms
        message = evaluation.message
        logger.info(
            "Connection UP at %s (Up for: %s, Latency: %dms)",
            format_timestamp(now),
            evaluation.uptime,
            latency_ms,
        )
    else:
        latency_ms = FAILED_LATENCY_MS
        message = f"{evaluation.message}. {outcome.error or 'Error: probe failed'}"
        logger.warning(
            "Connection DOWN at %s (Down for: %s)",
            format_timestamp(now),
            evaluation.downtime,
        )

    return CheckResult(
        timestamp=now,
        status=evaluation.status.value,
        latency_ms=latency_ms,
        uptime=evaluation.uptime,
        downtime=evaluation.downtime,
        message=message.replace('"', '""'),
        changes=state.connection_changes,
    )


class CheckWorker:
    """
    Runs check cycles strictly one after another.

    A ticker thread feeds a one-slot queue; a single consumer thread owns
    the ConnectionState and the log append path. Ticks are queued and run
    in order, but while a cycle overruns the interval they coalesce: at most
    one tick waits, so a slow cycle is followed by one catch-up cycle
    rather than a burst.
    """

    def __init__(
        self,
        config: MonitorConfig,
        log_path: Path,
        prober: Prober | None = None,
        state: ConnectionState | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.log_path = log_path
        self.state = state or ConnectionState()
        self._prober = prober or build_prober(config)
        self._clock = clock or MonotonicClock()
        self._ticks: queue.Queue[object] = queue.Queue(maxsize=1)
        self._stopping = threading.Event()
        self._ticker: threading.Thread | None = None
        self._consumer: threading.Thread | None = None

    def run_once(self) -> CheckResult | None:
        result = run_check(self.config, self.state, self._prober, now=self._clock())
        try:
            append_result(self.log_path, result)
        except OSError as e:
            # The next cycle proceeds independently.
            logger.error("Error logging result to %s: %s", self.log_path, e)
            return None
        return result

    def tick(self) -> bool:
        try:
            self._ticks.put_nowait(True)
        except queue.Full:
            logger.warning("Previous check still running; tick coalesced with the pending one")
            return False
        return True

    def _consume(self) -> None:
        while True:
            item = self._ticks.get()
            if item is _STOP:
                return
            if self._stopping.is_set():
                continue
            self.run_once()

    def _tick_forever(self) -> None:
        self.tick()
        while not self._stopping.wait(self.config.check_interval):
            self.tick()

    def start(self) -> None:
        self._consumer = threading.Thread(
            target=self._consume, name="check-worker", daemon=True
        )
        self._ticker = threading.Thread(
            target=self._tick_forever, name="check-ticker", daemon=True
        )
        self._consumer.start()
        self._ticker.start()

    def stop(self, timeout: float | None = None) -> bool:
        """Stop ticking, let an in-flight cycle finish. Returns False on timeout."""
        self._stopping.set()
        if self._ticker is not None:
            self._ticker.join()
        if self._consumer is None:
            return True
        try:
            self._ticks.put(_STOP, timeout=timeout)
        except queue.Full:
            return False
        self._consumer.join(timeout)
        return not self._consumer.is_alive()
