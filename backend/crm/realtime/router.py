"""
WebSocket endpoint for cache-invalidation hints.

Listeners authenticate with the session cookie or a bearer header. Once
connected, the server pushes ``lead_created``, ``lead_updated``,
``lead_deleted`` and ``activity_created`` envelopes for leads the listener
may read. Client messages are read and logged, nothing else.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from fastapi.security.utils import get_authorization_scheme_param
from sqlmodel import Session

from crm.auth import service as auth_service
from crm.config import settings
from crm.database import get_session
from crm.realtime.manager import ConnectionRegistry, Listener, get_connections

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

def _listener_token(websocket: WebSocket) -> Optional[str]:
    scheme, credentials = get_authorization_scheme_param(websocket.headers.get("Authorization"))
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return websocket.cookies.get(settings.SESSION_COOKIE_NAME)

@router.websocket("/ws")
async def websocket_changes(
    websocket: WebSocket,
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections),
):
    user = auth_service.resolve_session(session, _listener_token(websocket))
    if user is None:
        logger.info("Refusing real-time listener without a valid session")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    listener = Listener(user_id=user.id, role=user.role)
    # The socket can stay open for hours; give the pooled connection back now
    session.rollback()

    await connections.connect(websocket, listener)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                logger.debug("Received message from user %s: %s", listener.user_id, json.loads(raw))
            except ValueError:
                logger.warning("Ignoring non-JSON message from user %s", listener.user_id)
    except WebSocketDisconnect:
        pass
    finally:
        connections.disconnect(websocket)
