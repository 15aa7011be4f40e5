"""Centralized error handling for the portal API."""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from portal_client import AuthenticationRejected, BackendUnavailable, LoginFailed


class ErrorHandler:
    """Maps exceptions to structured JSON responses."""

    @staticmethod
    def _body(detail: Any, error_code: str, timestamp: str, correlation_id: str) -> Dict[str, Any]:
        return {
            "detail": detail,
            "error_code": error_code,
            "timestamp": timestamp,
            "correlation_id": correlation_id,
        }

    @staticmethod
    def handle_exception(exc: Exception, request: Request) -> JSONResponse:
        """Handle any exception and return structured response."""
        correlation_id = getattr(request.state, "correlation_id", str(uuid.uuid4()))
        timestamp = datetime.utcnow().isoformat() + "Z"

        ErrorHandler.log_error(
            exc,
            {
                "correlation_id": correlation_id,
                "method": request.method,
                "url": str(request.url),
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        headers = {"X-Correlation-ID": correlation_id}

        if isinstance(exc, HTTPException):
            return JSONResponse(
                status_code=exc.status_code,
                content=ErrorHandler._body(exc.detail, f"HTTP_{exc.status_code}", timestamp, correlation_id),
                headers=headers,
            )

        if isinstance(exc, AuthenticationRejected):
            # Backend message is shown to the user verbatim.
            return JSONResponse(
                status_code=401,
                content=ErrorHandler._body(exc.message, "AUTHENTICATION_REJECTED", timestamp, correlation_id),
                headers=headers,
            )

        if isinstance(exc, LoginFailed):
            return JSONResponse(
                status_code=502,
                content=ErrorHandler._body(exc.message, "LOGIN_FAILED", timestamp, correlation_id),
                headers=headers,
            )

        if isinstance(exc, BackendUnavailable):
            return JSONResponse(
                status_code=502,
                content=ErrorHandler._body(f"Backend error: {exc}", "BACKEND_UNAVAILABLE", timestamp, correlation_id),
                headers=headers,
            )

        if isinstance(exc, ValidationError):
            return JSONResponse(
                status_code=400,
                content=ErrorHandler.format_validation_error(exc, correlation_id, timestamp),
                headers=headers,
            )

        return JSONResponse(
            status_code=500,
            content=ErrorHandler._body("An unexpected error occurred", "INTERNAL_SERVER_ERROR", timestamp, correlation_id),
            headers=headers,
        )

    @staticmethod
    def log_error(exc: Exception, context: Dict[str, Any]) -> str:
        """Log error with context and return correlation ID."""
        correlation_id = context.get("correlation_id")
        if correlation_id is None:
            correlation_id = str(uuid.uuid4())

        print(f"[ERROR] {correlation_id} - {type(exc).__name__}: {str(exc)} - Context: {context}", flush=True)

        return correlation_id

    @staticmethod
    def format_validation_error(exc: ValidationError, correlation_id: str, timestamp: str) -> Dict[str, Any]:
        field_errors: Dict[str, List[str]] = {}
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            field_errors.setdefault(field_path, []).append(error["msg"])

        body = ErrorHandler._body("Validation error", "VALIDATION_ERROR", timestamp, correlation_id)
        body["field_errors"] = field_errors
        return body

    @staticmethod
    def unauthorized(detail: str = "Session is missing or expired", correlation_id: Optional[str] = None) -> HTTPException:
        """401 for protected routes; the body never says why the token failed."""
        return HTTPException(
            status_code=401,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer", "X-Correlation-ID": correlation_id or str(uuid.uuid4())},
        )
