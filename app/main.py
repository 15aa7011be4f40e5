from app.core import bootstrap  # noqa: F401  (must run before config is read)

from fastapi import FastAPI, Request

from app.api import clients, health, session
from app.core.config import config
from app.core.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from app.services.error_handler import ErrorHandler
from portal_client import AuthenticationRejected, BackendUnavailable, LoginFailed

app = FastAPI(title="ON-NET Portal", version="0.1.0")

# ErrorHandlingMiddleware is added last so it wraps request logging and the
# correlation id exists when the log line is written.
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ErrorHandlingMiddleware)


async def _portal_exception_handler(request: Request, exc: Exception):
    return ErrorHandler.handle_exception(exc, request)


app.add_exception_handler(AuthenticationRejected, _portal_exception_handler)
app.add_exception_handler(LoginFailed, _portal_exception_handler)
app.add_exception_handler(BackendUnavailable, _portal_exception_handler)

app.include_router(health.router)
app.include_router(session.router)
app.include_router(clients.router)


@app.on_event("startup")
def _log_configuration():
    print("--- Portal Configuration ---")
    print(f"API host:           {config.API_HOST or '(not set)'}")
    print(f"HTTP timeout:       {config.PORTAL_HTTP_TIMEOUT}s")
    print(f"Token store:        {config.TOKEN_STORE_PATH}")
    print(f"Blur close delay:   {config.SELECTOR_BLUR_CLOSE_MS}ms")
    print("----------------------------", flush=True)
