"""FastAPI entrypoint for the restaurant POS API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from pos_api.api.v1.api import api_router
from pos_api.core.config import settings
from pos_api.core.errors import PosError
from pos_api.core.security import AuthContext, resolve_auth_context
from pos_api.db import session as db_session
from pos_api.db.base import Base
from pos_api.db.seed import ensure_seed_data
from pos_api.services.notifications import get_dispatcher
from pos_api.services.security_guards import can_access_tenant

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.include_router(api_router, prefix="/api/v1")


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.on_event("startup")
def startup() -> None:
    configure_logging()
    Base.metadata.create_all(bind=db_session.engine)
    if not settings.seed_demo_data:
        return
    with db_session.SessionLocal() as session:
        try:
            seeded = ensure_seed_data(session)
            logger.info("[BOOTSTRAP] demo data seeded: %s", "yes" if seeded else "already present")
        except Exception:
            session.rollback()
            logger.exception("[BOOTSTRAP] Seed failed; continuing startup.")


@app.exception_handler(PosError)
async def pos_error_handler(request: Request, exc: PosError) -> JSONResponse:
    if exc.status_code >= 500 or exc.retryable:
        logger.warning("[API] %s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    else:
        logger.info("[API] %s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.app_env}


def authenticate_socket(token: str) -> AuthContext:
    """Resolve a WebSocket query token with a short-lived session."""
    with db_session.SessionLocal() as session:
        return resolve_auth_context(session, token)


@app.websocket("/ws/restaurants/{restaurant_id}")
async def restaurant_events(websocket: WebSocket, restaurant_id: int) -> None:
    """Push order, table and payment events of one restaurant to a client."""
    token: str | None = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        ctx: AuthContext = await run_in_threadpool(authenticate_socket, token)
    except PosError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if not can_access_tenant(ctx, restaurant_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    dispatcher = get_dispatcher()
    await websocket.accept()
    queue = dispatcher.subscribe(restaurant_id, asyncio.get_running_loop())

    async def forward() -> None:
        while True:
            await websocket.send_json(await queue.get())

    sender = asyncio.create_task(forward())
    try:
        # Inbound frames are ignored; receiving only detects the disconnect.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("[NOTIFY] Client of restaurant %s disconnected", restaurant_id)
    finally:
        sender.cancel()
        dispatcher.unsubscribe(restaurant_id, queue)
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.warning("[NOTIFY] Delivery to a client of restaurant %s failed", restaurant_id, exc_info=True)
