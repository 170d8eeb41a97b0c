"""
Realtime feed of a community over WebSocket.

Clients connect to ``/ws/comunidad/{community_id}?token=<bearer>`` and
receive every event published on that community's channels as JSON::

    {"event": "newComentario_7", "kind": "newComentario",
     "communityId": 7, "data": {...}}

An optional ``events`` query parameter (comma separated kinds)
restricts the subscription.  Connections with an invalid token, from
non-members or with unknown event kinds are refused with a policy
violation close code.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from uconnect_api.app.core.errors import ServiceError
from uconnect_api.app.core.security import verify_token
from uconnect_api.app.infra.realtime import EventKind, Subscription, WebSocketHub
from uconnect_api.app.services.membership_service import MembershipOracle


logger = logging.getLogger(__name__)

router = APIRouter()


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    try:
        while True:
            message = await subscription.queue.get()
            await websocket.send_json(message)
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("Stopped forwarding to subscriber of community %s: %s", subscription.community_id, exc)
    except Exception:
        logger.exception("Forwarding to subscriber of community %s failed", subscription.community_id)


@router.websocket("/ws/comunidad/{community_id}")
async def community_feed(
    websocket: WebSocket,
    community_id: int,
    token: Optional[str] = None,
    events: Optional[str] = None,
) -> None:
    try:
        identity = verify_token(token)
    except ServiceError as exc:
        logger.info("Refused realtime connection to community %s: %s", community_id, exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if not await MembershipOracle.is_member(community_id, identity.account_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    kinds = None
    if events:
        try:
            kinds = frozenset(EventKind(kind.strip()) for kind in events.split(",") if kind.strip())
        except ValueError:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    hub: WebSocketHub = websocket.app.state.realtime_hub
    # Subscribe before the handshake completes so no event published
    # right after it is missed.
    subscription = hub.subscribe(community_id, kinds)
    sender = None
    try:
        await websocket.accept()
        sender = asyncio.create_task(_forward(websocket, subscription))
        # Incoming frames (text or binary) are only keep-alives; reading
        # them detects disconnects.
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        hub.unsubscribe(subscription)
        if sender is not None:
            sender.cancel()
        logger.debug("Account %s left the feed of community %s", identity.account_id, community_id)
