import logging

from fastapi import FastAPI, HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from conn_watchdog.api_schemas import ConfigResponse, ConnectionDataRow, HealthResponse
from conn_watchdog.config import load_config
from conn_watchdog.models import MonitorConfig
from conn_watchdog.persistence import LogReadError, read_log, resolve_log_path

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Unconditional CORS headers; browsers on any origin may read the log."""

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response


def health():
    return {"status": "ok"}


def config(request: Request):
    cfg: MonitorConfig = request.app.state.config
    return {
        "ping_target": cfg.ping_target,
        "probe": cfg.probe,
        "check_interval": cfg.check_interval,
        "ping_count": cfg.ping_count,
        "ping_timeout": cfg.ping_timeout,
        "log_file": cfg.log_file,
    }


def connection_data(request: Request):
    try:
        return read_log(request.app.state.log_path)
    except LogReadError as exc:
        logger.error("Failed to serve connection data: %s", exc)
        raise HTTPException(status_code=500, detail="Unable to read log file") from exc


def connection_data_options():
    return Response(status_code=200)


def create_app(cfg: MonitorConfig | None = None) -> FastAPI:
    """App factory; also usable as `uvicorn --factory conn_watchdog.main:create_app`."""
    if cfg is None:
        cfg = load_config()
    app = FastAPI(
        title="Connection Watchdog",
        version="1.0.0",
        description=(
            "Periodically probes a remote host, logs every observation to a CSV "
            "file and serves that log as JSON."
        ),
    )
    app.state.config = cfg
    app.state.log_path = resolve_log_path(cfg.log_file)
    app.add_middleware(CorsHeadersMiddleware)

    app.add_api_route(
        "/health",
        health,
        methods=["GET"],
        response_model=HealthResponse,
        tags=["system"],
        summary="Health Check",
        description="Liveness endpoint used by probes and orchestration.",
    )
    app.add_api_route(
        "/api/config",
        config,
        methods=["GET"],
        response_model=ConfigResponse,
        tags=["system"],
        summary="Current Effective Config",
        description="Returns the monitor settings in effect.",
    )
    app.add_api_route(
        "/api/connection-data",
        connection_data,
        methods=["GET"],
        response_model=list[ConnectionDataRow],
        tags=["connection"],
        summary="Connection Log",
        description="Every logged check, oldest first, values as strings.",
    )
    app.add_api_route(
        "/api/connection-data",
        connection_data_options,
        methods=["OPTIONS"],
        include_in_schema=False,
    )
    return app

