"""Correlation ids and request logging for the portal API."""

import re
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.services.error_handler import ErrorHandler

CORRELATION_HEADER = "X-Correlation-ID"

# Caller-supplied ids end up in log lines, so only short plain tokens are kept.
_CALLER_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def correlation_id_for(request: Request) -> str:
    incoming = request.headers.get(CORRELATION_HEADER, "")
    if _CALLER_CORRELATION_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Tags every request with a correlation id; anything unhandled becomes the portal's JSON 500."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = correlation_id_for(request)
        request.state.correlation_id = correlation_id
        try:
            response = await call_next(request)
        except Exception as exc:
            return ErrorHandler.handle_exception(exc, request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One ``[REQUEST]`` line per call.

    The query string is left out (it carries client search terms) and only the
    presence of a bearer token is noted, never the token.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        auth = "bearer" if request.headers.get("Authorization", "").lower().startswith("bearer ") else "anonymous"
        print(
            f"[REQUEST] {correlation_id} - {request.method} {request.url.path} ({auth}) - "
            f"{response.status_code} in {elapsed_ms:.1f}ms",
            flush=True,
        )
        return response
