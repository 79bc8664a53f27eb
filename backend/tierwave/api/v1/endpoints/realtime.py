"""WebSocket endpoint relaying subscription updates to a user's live clients.

Protocol:
    client -> {"type": "auth", "token": "<jwt>"}
    server -> {"type": "auth.ok", "userId": "<uuid>"}
    server -> {"type": "subscription.updated", ...}   (repeated)

An unauthenticated socket is closed with code 4001.
"""

import asyncio
from typing import Any, Optional
from uuid import UUID

import jwt
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from tierwave.api.auth import decode_user_id
from tierwave.api.deps import Inject
from tierwave.core.logging import logger
from tierwave.core.protocols.pubsub import PubSub, PubSubSubscription
from tierwave.domains.notifications.protocols import SUBSCRIPTION_NAMESPACE

router = APIRouter()

AUTH_TIMEOUT_SECONDS = 10
UNAUTHORIZED_CLOSE_CODE = 4001


async def _authenticate(websocket: WebSocket) -> Optional[UUID]:
    try:
        message = await asyncio.wait_for(websocket.receive_json(), timeout=AUTH_TIMEOUT_SECONDS)
    except (asyncio.TimeoutError, ValueError):
        return None
    if not isinstance(message, dict) or message.get("type") != "auth":
        return None
    token = message.get("token")
    if not isinstance(token, str):
        return None
    try:
        return decode_user_id(token)
    except jwt.InvalidTokenError as e:
        logger.debug(f"WebSocket auth rejected: {e}")
        return None


async def _relay(websocket: WebSocket, subscription: PubSubSubscription) -> None:
    async for message in subscription.listen():
        if message.get("type") != "message":
            continue
        data: Any = message.get("data")
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        await websocket.send_text(data)


async def _drain(websocket: WebSocket) -> None:
    # Client messages after auth carry nothing; read until the client leaves.
    while True:
        await websocket.receive_text()


async def _cancel_and_wait(*tasks: asyncio.Task) -> None:
    """Cancel *tasks* and collect their results so none is left pending."""
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


@router.websocket("/ws")
async def subscription_updates(websocket: WebSocket, pubsub: PubSub = Inject(PubSub)) -> None:
    """Authenticate, subscribe to the user's channel and relay until disconnect."""
    await websocket.accept()

    user_id = await _authenticate(websocket)
    if user_id is None:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Unauthorized")
        return

    log = logger.with_context(user_id=str(user_id))
    subscription = await pubsub.subscribe(SUBSCRIPTION_NAMESPACE, user_id)
    await websocket.send_json({"type": "auth.ok", "userId": str(user_id)})
    log.debug("Realtime connection opened")

    relay = asyncio.create_task(_relay(websocket, subscription))
    drain = asyncio.create_task(_drain(websocket))
    try:
        done, _ = await asyncio.wait({relay, drain}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                log.error(f"Realtime connection failed: {exc}")
    finally:
        await _cancel_and_wait(relay, drain)
        await subscription.close()
        log.debug("Realtime connection closed")

    if (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    ):
        await websocket.close()
