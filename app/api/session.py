"""Session API endpoints: login, logout and status."""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_auth_service, get_session_checker, get_token_store, require_session
from app.models.requests import LoginRequest
from app.models.responses import LoginResponse, SessionStatusResponse, SuccessResponse
from app.services.auth import AuthService
from app.services.session import SessionChecker
from app.services.token_store import TOKEN_KEY, USER_KEY, KeyValueStore

router = APIRouter(prefix="/api/session", tags=["session"])


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Authenticate against the backend and keep the session."""
    result = auth.login(payload.username, payload.password)
    return LoginResponse(token=result.token, dashboard_route=result.dashboard_route, user=result.user)


@router.post("/logout", response_model=SuccessResponse)
def logout(token: str = Depends(require_session), store: KeyValueStore = Depends(get_token_store)):
    """Drop the stored session, but only when it belongs to the caller."""
    if store.get(TOKEN_KEY) == token:
        store.remove(TOKEN_KEY)
        store.remove(USER_KEY)
    return SuccessResponse(message="Session closed")


@router.get("/status", response_model=SessionStatusResponse)
def status(checker: SessionChecker = Depends(get_session_checker)):
    """Validity of the stored session, re-read on every call."""
    state = checker.state
    return SessionStatusResponse(
        is_authenticated=state.is_authenticated,
        loading=state.loading,
        seconds_remaining=checker.seconds_remaining(),
    )
