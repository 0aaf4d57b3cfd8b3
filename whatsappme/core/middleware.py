"""Middlewares personalizados para el relay."""

from __future__ import annotations

import time
from collections.abc import Iterable
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from whatsappme.core.logging import get_logger

logger = get_logger("whatsappme.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Registra cada request con un `request_id` propagado en la respuesta.

    Las rutas en `quiet_paths` (sondeos de salud) se registran en DEBUG.
    """

    def __init__(self, app: ASGIApp, quiet_paths: Iterable[str] = ("/health",)) -> None:
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex
        start = time.perf_counter()
        path = request.url.path
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "client_ip": request.client.host if request.client else None,
        }
        if path == "/webhook":
            context["signed"] = "x-hub-signature-256" in request.headers

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                "request.failed",
                extra={**context, "duration_ms": round(duration_ms, 2)},
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["x-request-id"] = request_id

        log = logger.debug if path in self.quiet_paths else logger.info
        log(
            "request.completed",
            extra={
                **context,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
