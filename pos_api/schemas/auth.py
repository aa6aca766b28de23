"""Authentication-related request and response schemas."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Payload for user login."""

    email: str
    password: str


class TokenResponse(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"


class AuthContextResponse(BaseModel):
    """Resolved caller for the current token."""

    user_id: int
    role: str
    restaurant_id: int | None = None
