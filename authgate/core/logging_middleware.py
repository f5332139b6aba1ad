"""
Request Logging Middleware for authgate.

Structured request/response logging with timing and a request id.
Authorization headers and bodies are never logged.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from authgate.core.rate_limit import client_address

logger = logging.getLogger("authgate.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with request id, client ip, status and duration."""

    EXCLUDE_PATHS = {
        "/healthz",
        "/favicon.ico",
    }

    def __init__(self, app, trust_proxy_headers: bool = False):
        super().__init__(app)
        self.trust_proxy_headers = trust_proxy_headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in self.EXCLUDE_PATHS:
            return await call_next(request)

        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "client_ip": client_address(request, self.trust_proxy_headers),
        }

        logger.debug("Request started: %s %s", request.method, path, extra=log_data)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            log_data.update({
                "status_code": 500,
                "duration_ms": round(duration_ms, 2),
                "error": str(e),
            })
            logger.exception(
                "Request failed: %s %s -> 500 (%.2fms)",
                request.method, path, duration_ms,
                extra=log_data,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_data.update({
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        })

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "Request completed: %s %s -> %d (%.2fms)",
            request.method, path, response.status_code, duration_ms,
            extra=log_data,
        )

        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response
