"""Security utilities for password hashing and JWT-based auth."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from pos_api.core.config import settings
from pos_api.core.errors import AuthenticationRequired
from pos_api.db.session import get_db
from pos_api.models.user import User, normalize_user_role

pwd_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller as seen by the services."""

    user_id: int
    role: str
    restaurant_id: int | None


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token from payload data."""
    to_encode: dict[str, Any] = data.copy()
    expire: datetime = datetime.now(timezone.utc) + timedelta(
        minutes=settings.jwt_expire_minutes
    )
    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def create_user_token(user: User) -> str:
    """Access token carrying the user's id, role and restaurant."""
    return create_access_token({"sub": str(user.id), "role": user.role, "restaurant_id": user.restaurant_id})


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token payload."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise AuthenticationRequired("Could not validate credentials") from exc

    return payload


def resolve_auth_context(db: Session, token: str) -> AuthContext:
    """Map a bearer token onto the active user it was issued for."""
    payload: dict[str, Any] = verify_token(token)
    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise AuthenticationRequired("Invalid authentication token")

    try:
        parsed_user_id: int = int(user_id)
    except (TypeError, ValueError) as exc:
        raise AuthenticationRequired("Invalid authentication token") from exc

    user: User | None = db.get(User, parsed_user_id)
    if user is None or not user.is_active:
        raise AuthenticationRequired("User not found or inactive", user_id=parsed_user_id)

    return AuthContext(user_id=user.id, role=normalize_user_role(user.role), restaurant_id=user.restaurant_id)


def get_auth_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Resolve the authenticated caller from the Authorization header."""
    if credentials is None:
        raise AuthenticationRequired("Not authenticated")
    return resolve_auth_context(db, credentials.credentials)
