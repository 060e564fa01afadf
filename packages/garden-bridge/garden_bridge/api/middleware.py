"""API layer — Request middleware and exception rendering.

- Request ID injection (X-Request-ID header)
- Structured access logging
- Optional shared-token check (X-Garden-Token)
- Exception handlers that answer with the ``{ok, error}`` envelope
"""

from __future__ import annotations

import time
import uuid
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from garden_bridge.exceptions import (
    BridgeError,
    CommandError,
    ConfigurationError,
    ResourceNotFoundError,
)
from garden_bridge.logging import bind_invocation_context, clear_invocation_context, get_logger
from garden_bridge.protocol.constants import HEADER_API_TOKEN, HEADER_REQUEST_ID, ErrorCode
from garden_bridge.protocol.envelope import CommandResult

log = get_logger(__name__)

# Paths reachable without the shared token.
_PUBLIC_PATHS = frozenset({"/health"})


def envelope_response(
    status_code: int,
    code: str | ErrorCode,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = CommandResult.failure(code, message).to_wire()
    return JSONResponse(status_code=status_code, content=body, headers=headers)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique X-Request-ID to every request and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(HEADER_REQUEST_ID) or uuid.uuid4().hex
        request.state.request_id = request_id
        bind_invocation_context(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            clear_invocation_context()
        response.headers[HEADER_REQUEST_ID] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log each request with timing information."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        log.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
            request_id=getattr(request.state, "request_id", None),
        )
        return response


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Reject requests without the configured token.

    Only installed when ``server.api_token`` is set; a loopback-only daemon
    runs without it.
    """

    def __init__(self, app: Any, token: str) -> None:
        super().__init__(app)
        self._token = token

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or request.url.path in _PUBLIC_PATHS:
            return await call_next(request)
        if request.headers.get(HEADER_API_TOKEN) != self._token:
            log.warning("http_unauthorized", path=request.url.path)
            return envelope_response(
                401,
                "UNAUTHORIZED",
                "Invalid or missing API token",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return await call_next(request)


def build_error_handler() -> Any:
    """Return a FastAPI exception handler for BridgeError subclasses."""

    async def handler(request: Request, exc: BridgeError) -> JSONResponse:
        if isinstance(exc, ResourceNotFoundError):
            return envelope_response(404, ErrorCode.NOT_FOUND, "Resource not found")
        if isinstance(exc, CommandError):
            status_code = 404 if exc.code == ErrorCode.NOT_FOUND.value else 400
            return envelope_response(status_code, exc.code, exc.message)
        if isinstance(exc, ConfigurationError):
            log.error("configuration_error", error=exc.message, path=request.url.path)
        else:
            log.error("unhandled_bridge_error", error=exc.message, path=request.url.path)
        return envelope_response(500, ErrorCode.INTERNAL_ERROR, exc.message)

    return handler


def build_http_error_handler() -> Any:
    """Render routing errors (unknown path, wrong method) as the envelope."""

    async def handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (404, 405):
            return envelope_response(404, ErrorCode.NOT_FOUND, "Use POST /invoke")
        detail = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        return envelope_response(exc.status_code, "HTTP_ERROR", detail, headers=exc.headers)

    return handler
