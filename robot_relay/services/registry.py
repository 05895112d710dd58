import logging
import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import tornado.websocket

from robot_relay.models import Envelope, Role

logger = logging.getLogger(__name__)

EVICTED_CLOSE_CODE = 4000


class RegistryMode(str, Enum):
    SINGLE_PAIR = "single"
    MULTI_ROBOT = "multi"


def new_connection_id(role: Role) -> str:
    prefix = "robot" if role is Role.ROBOT else "client"
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class Connection:
    """
    A registered peer.

    ``transport`` is the object that owns the socket; in production it is the
    Tornado WebSocket handler, which provides ``write_message``, ``ping``,
    ``close`` and ``terminate``.
    """

    def __init__(self, transport: Any, role: Role, connection_id: str, remote_address: Optional[str] = None):
        self.transport = transport
        self.role = role
        self.id = connection_id
        self.remote_address = remote_address
        self.connected_at = datetime.now(timezone.utc)
        self.last_ping = self.connected_at
        self.is_alive = True
        self.closed = False

    def __repr__(self) -> str:
        return f"<Connection {self.role.value} {self.id}>"

    async def send(self, message: Envelope) -> bool:
        if self.closed:
            return False
        try:
            await self.transport.write_message(message.to_json())
        except tornado.websocket.WebSocketClosedError:
            logger.warning("Dropped %s for %s: socket already closed", message.type, self.id)
            return False
        return True

    def ping(self) -> None:
        try:
            self.transport.ping()
        except tornado.websocket.WebSocketClosedError:
            logger.debug("Skipped heartbeat ping for closing socket %s", self.id)

    def mark_alive(self) -> None:
        self.is_alive = True
        self.last_ping = datetime.now(timezone.utc)

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        self.transport.close(code=code, reason=reason)

    def terminate(self) -> None:
        self.transport.terminate()

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "ip": self.remote_address,
            "connectedAt": self.connected_at.isoformat(),
            "lastPing": self.last_ping.isoformat(),
            "isConnected": not self.closed,
        }


class RoleRegistry:
    """
    Owns every live connection, keyed by role and id.

    In single-pair mode each role holds at most one connection and a newcomer
    evicts the current occupant. In multi-robot mode robots and web clients
    accumulate in connection order.
    """

    def __init__(self, mode: RegistryMode = RegistryMode.SINGLE_PAIR):
        self.mode = RegistryMode(mode)
        self._slots: Dict[Role, Dict[str, Connection]] = {Role.ROBOT: {}, Role.WEB_CLIENT: {}}

    @property
    def single_pair(self) -> bool:
        return self.mode is RegistryMode.SINGLE_PAIR

    def register(self, connection: Connection) -> Optional[Connection]:
        """Store ``connection``; returns the occupant it evicted, if any."""
        slot = self._slots[connection.role]
        evicted = None
        if self.single_pair and slot:
            _, evicted = slot.popitem()
            logger.info(
                "Replacing %s %s with %s", connection.role.value, evicted.id, connection.id
            )
            evicted.close(
                code=EVICTED_CLOSE_CODE,
                reason=f"Replaced by newer {connection.role.value} connection",
            )
        slot[connection.id] = connection
        return evicted

    def unregister(self, role: Role, connection_id: str) -> Optional[Connection]:
        return self._slots[role].pop(connection_id, None)

    def lookup(self, role: Role, connection_id: Optional[str] = None) -> List[Connection]:
        slot = self._slots[role]
        if connection_id is None:
            return list(slot.values())
        connection = slot.get(connection_id)
        return [connection] if connection is not None else []

    def list_ids(self, role: Role) -> List[str]:
        return list(self._slots[role])

    def connections(self) -> List[Connection]:
        return [conn for slot in self._slots.values() for conn in slot.values()]

    def describe(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "robots": [conn.describe() for conn in self._slots[Role.ROBOT].values()],
            "web_clients": len(self._slots[Role.WEB_CLIENT]),
        }
