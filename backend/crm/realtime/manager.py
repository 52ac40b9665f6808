"""
Registry of open real-time connections.

One instance per application, stored on ``app.state.connections``. A socket
is registered only after the ``connected`` acknowledgement has been sent and
is dropped on disconnect or on the first failed send. Each socket remembers
who opened it so lead events only reach listeners allowed to read that lead.
"""
import logging
from typing import Collection, Dict, NamedTuple, Union

from fastapi import WebSocket
from starlette.requests import HTTPConnection
from starlette.websockets import WebSocketState

from crm.auth.policy import Action, Scope, scope_for
from crm.realtime.events import ChangeEvent, ConnectedMessage
from crm.users.models import Role

logger = logging.getLogger(__name__)

class Listener(NamedTuple):
    user_id: int
    role: Role

    def can_see(self, owner_ids: Collection[int]) -> bool:
        scope = scope_for(self.role, Action.READ_LEADS)
        if scope == Scope.ALL:
            return True
        return scope == Scope.OWN and self.user_id in owner_ids

class ConnectionRegistry:
    def __init__(self):
        self._connections: Dict[WebSocket, Listener] = {}

    async def connect(self, websocket: WebSocket, listener: Listener) -> None:
        """Accept the socket, acknowledge it, then start delivering broadcasts to it."""
        await websocket.accept()
        await websocket.send_text(ConnectedMessage().model_dump_json(by_alias=True))
        self._connections[websocket] = listener
        logger.info("WebSocket connected for user %s (%s open)", listener.user_id, len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if self._connections.pop(websocket, None) is not None:
            logger.info("WebSocket closed (%s open)", len(self._connections))

    async def broadcast(self, event: Union[ChangeEvent, ConnectedMessage], owner_ids: Collection[int] = ()) -> int:
        """Send to every open connection allowed to see a lead owned by ``owner_ids``.

        Returns how many sends succeeded. Failures are logged and the failing
        socket is dropped. Nothing is raised to the caller.
        """
        data = event.model_dump_json(by_alias=True)
        delivered = 0

        # Snapshot: sockets may connect or close while we await sends
        for websocket, listener in list(self._connections.items()):
            if websocket.client_state != WebSocketState.CONNECTED:
                self.disconnect(websocket)
                continue
            if not listener.can_see(owner_ids):
                continue
            try:
                await websocket.send_text(data)
                delivered += 1
            except Exception:
                logger.warning("Dropping WebSocket after failed send of %s", event.type, exc_info=True)
                self.disconnect(websocket)

        logger.debug("Broadcast %s to %s connection(s)", event.type, delivered)
        return delivered

    def __len__(self) -> int:
        return len(self._connections)

def get_connections(connection: HTTPConnection) -> ConnectionRegistry:
    return connection.app.state.connections
