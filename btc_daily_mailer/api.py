from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Callable
from wsgiref.simple_server import make_server

from . import config
from .config import SERVICE_NAME
from .orchestrator import run_once

logger = logging.getLogger(__name__)


def create_app(settings: config.Settings, runner: Callable[[config.Settings], object] = run_once):
    """Build the WSGI app exposing /, /health and /run-once."""

    def app(environ: dict, start_response):  # type: ignore[no-untyped-def]
        method = environ.get("REQUEST_METHOD", "GET")
        path = environ.get("PATH_INFO", "")

        if path not in {"/", "/health", "/run-once"}:
            return _json(start_response, HTTPStatus.NOT_FOUND, {"error": "NOT_FOUND"})
        if method != "GET":
            return _json(start_response, HTTPStatus.METHOD_NOT_ALLOWED, {"error": "METHOD_NOT_ALLOWED"})

        if path == "/health":
            return _json(
                start_response,
                HTTPStatus.OK,
                {"status": "ok", "timestamp": _timestamp(), "timezone": settings.timezone},
            )

        if path == "/run-once":
            logger.info("Manual trigger activated")
            try:
                runner(settings)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Manual trigger failed: %s", exc)
                return _json(
                    start_response,
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    {"success": False, "error": str(exc), "timestamp": _timestamp()},
                )
            return _json(
                start_response,
                HTTPStatus.OK,
                {"success": True, "message": "Email sent successfully", "timestamp": _timestamp()},
            )

        return _json(
            start_response,
            HTTPStatus.OK,
            {
                "service": SERVICE_NAME,
                "status": "running",
                "timezone": settings.timezone,
                "endpoints": {"health": "/health", "manual_trigger": "/run-once"},
            },
        )

    return app


def run_api_server(settings: config.Settings) -> None:
    with make_server(settings.host, settings.port, create_app(settings)) as server:
        logger.info("%s listening on http://%s:%s", SERVICE_NAME, settings.host, settings.port)
        server.serve_forever()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _json(start_response, status: HTTPStatus, payload: dict):  # type: ignore[no-untyped-def]
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    start_response(
        f"{status.value} {status.phrase}",
        [("Content-Type", "application/json; charset=utf-8"), ("Content-Length", str(len(body)))],
    )
    return [body]
