from typing import Optional

import tornado.ioloop
import tornado.websocket

from robot_relay.models import Role
from robot_relay.services.classifier import ConnectionClassifier
from robot_relay.services.registry import Connection, new_connection_id
from robot_relay.services.router import MessageRouter


class RelayWebSocketHandler(tornado.websocket.WebSocketHandler):
    def initialize(
        self,
        router: MessageRouter,
        classifier: ConnectionClassifier,
        role_hint: Optional[Role] = None,
    ):
        self.router = router
        self.classifier = classifier
        self.role_hint = role_hint
        self.connection: Optional[Connection] = None

    def check_origin(self, origin: str) -> bool:
        # Dashboards are served from a different port than the relay.
        return True

    async def open(self):
        role = self.classifier.classify(self.request.headers.get("User-Agent"), self.role_hint)
        self.connection = Connection(
            transport=self,
            role=role,
            connection_id=new_connection_id(role),
            remote_address=self.request.remote_ip,
        )
        await self.router.connection_opened(self.connection)

    async def on_message(self, message):
        if self.connection is None:
            return
        await self.router.handle_message(self.connection, message)

    def on_pong(self, data: bytes) -> None:
        if self.connection is not None:
            self.connection.mark_alive()

    def on_close(self):
        if self.connection is None:
            return
        if self.router.release(self.connection):
            tornado.ioloop.IOLoop.current().add_callback(self.router.announce_departure, self.connection)

    def terminate(self) -> None:
        """Drop the TCP stream without a closing handshake."""
        if self.ws_connection is None:
            return
        if self.ws_connection.stream is not None:
            self.ws_connection.stream.close()
        else:
            self.close()
