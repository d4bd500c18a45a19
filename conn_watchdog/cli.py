"""Command-line entry point: validate config, start the checker and the API, wait for a signal."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Sequence

import yaml
from pydantic import ValidationError

from conn_watchdog.config import load_config, settings
from conn_watchdog.main import create_app
from conn_watchdog.models import MonitorConfig
from conn_watchdog.persistence import ensure_log, resolve_log_path
from conn_watchdog.runner import CheckWorker
from conn_watchdog.server import ApiServer, ShutdownTimeoutError

logger = logging.getLogger("conn_watchdog")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="conn-watchdog",
        description="Monitor internet reachability and serve the log over HTTP.",
    )
    parser.add_argument("--config", type=Path, help="YAML file with monitor settings")
    parser.add_argument("--ping-target", help="Target to ping (default 8.8.8.8)")
    parser.add_argument(
        "--check-interval", type=int, help="Interval between checks in seconds (default 30)"
    )
    parser.add_argument("--log-file", help="Log file path (default connection_log.csv)")
    parser.add_argument(
        "--ping-count", type=int, help="Number of ping packets to send (default 3)"
    )
    parser.add_argument(
        "--ping-timeout", type=int, help="Ping timeout in seconds (default 5)"
    )
    parser.add_argument("--api-host", help="Address for the HTTP API (default 0.0.0.0)")
    parser.add_argument(
        "--api-port", type=int, help="Port for the HTTP API server (default 8080)"
    )
    parser.add_argument(
        "--probe", choices=["ping", "tcp", "http"], help="Probe method (default ping)"
    )
    parser.add_argument(
        "--probe-port", type=int, help="Port for the tcp probe (default 443)"
    )
    parser.add_argument(
        "--shutdown-timeout",
        type=float,
        help="Seconds to drain HTTP requests on shutdown (default 5)",
    )
    parser.add_argument(
        "--log-level", default=settings.WATCHDOG_LOG_LEVEL, help="Logging level"
    )
    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        field: getattr(args, field, None)
        for field in MonitorConfig.model_fields
    }


def build_config(args: argparse.Namespace) -> MonitorConfig:
    return load_config(path=args.config, overrides=_overrides(args))


def run(cfg: MonitorConfig, stop_event: threading.Event) -> int:
    log_path = resolve_log_path(cfg.log_file)
    try:
        ensure_log(log_path)
    except OSError as e:
        logger.error("Error initializing log file %s: %s", log_path, e)
        return 1

    api = ApiServer(
        create_app(cfg),
        host=cfg.api_host,
        port=cfg.api_port,
        shutdown_timeout=cfg.shutdown_timeout,
    )
    try:
        api.start()
    except RuntimeError as e:
        logger.error("Error starting API server: %s", e)
        return 1

    worker = CheckWorker(cfg, log_path)
    logger.info(
        "Starting connection monitor (checking every %d seconds)", cfg.check_interval
    )
    logger.info(
        "Probing %s (%s) with %d packets every check",
        cfg.ping_target,
        cfg.probe,
        cfg.ping_count,
    )
    logger.info("Logging results to %s", log_path)
    worker.start()

    stop_event.wait()

    exit_code = 0
    # A check cycle is bounded by the probe timeout plus ping's one-second margin.
    if not worker.stop(timeout=cfg.ping_timeout + 1 + cfg.shutdown_timeout):
        logger.error("Check worker did not finish its last cycle in time")
        exit_code = 1
    try:
        api.stop()
    except ShutdownTimeoutError as e:
        logger.error("%s", e)
        exit_code = 1

    logger.info("Connection monitor stopped")
    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = build_config(args)
    except (ValidationError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    stop_event = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    return run(cfg, stop_event)


if __name__ == "__main__":
    sys.exit(main())
