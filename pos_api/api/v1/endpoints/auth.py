"""Authentication endpoints (API JWT)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.core.errors import AuthenticationRequired
from pos_api.core.security import AuthContext, create_user_token, get_auth_context, verify_password
from pos_api.db.session import get_db, unit_of_work
from pos_api.models.user import User
from pos_api.schemas.auth import AuthContextResponse, LoginRequest, TokenResponse
from pos_api.utils.time import Clock, get_clock

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> TokenResponse:
    user: User | None = db.scalar(select(User).where(User.email == payload.email.strip().lower()))
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info("[AUTH] Rejected login for %s", payload.email)
        raise AuthenticationRequired("Incorrect email or password")
    with unit_of_work(db):
        user.last_login_at = clock.now()
    return TokenResponse(access_token=create_user_token(user))


@router.get("/me", response_model=AuthContextResponse)
def me(ctx: AuthContext = Depends(get_auth_context)) -> AuthContextResponse:
    return AuthContextResponse(user_id=ctx.user_id, role=ctx.role, restaurant_id=ctx.restaurant_id)
