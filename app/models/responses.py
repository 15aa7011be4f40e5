"""Response models for API endpoints."""

from typing import Any

from pydantic import BaseModel


class LoginResponse(BaseModel):
    """Successful login; ``token`` is sent back as the bearer for protected routes."""
    token: str
    dashboard_route: str
    user: dict[str, Any]


class SessionStatusResponse(BaseModel):
    is_authenticated: bool
    loading: bool
    seconds_remaining: int


class ClientOption(BaseModel):
    id: int
    nombre: str


class SuggestResponse(BaseModel):
    """Search-mode view over client names."""
    query: str
    open: bool
    items: list[str]
    empty_message: str | None = None
    meta: dict[str, Any]


class OptionsResponse(BaseModel):
    """Select-mode view over client options."""
    query: str
    open: bool
    options: list[ClientOption]
    placeholder: str
    hidden_value: str | None = None
    meta: dict[str, Any]


class SuccessResponse(BaseModel):
    """Standard success response model."""
    success: bool = True
    message: str | None = None
