import logging
from typing import List, Optional, Tuple, Union

from robot_relay.models import (
    CommandMessage,
    CommandReceivedMessage,
    CommandResponseForward,
    CommandResponseReport,
    Envelope,
    ErrorMessage,
    LocationReport,
    LocationRequestMessage,
    LocationRequestReceivedMessage,
    MessageDecodeError,
    PingMessage,
    PongMessage,
    RobotLocationMessage,
    RobotStatusMessage,
    Role,
    SendLocationMessage,
    StatusReport,
    UnrecognizedMessage,
    VoiceCommandMessage,
    VoiceCommandReceivedMessage,
    parse_client_message,
    parse_robot_message,
    utc_timestamp,
)
from robot_relay.services.notifier import Notifier
from robot_relay.services.registry import Connection, RoleRegistry

logger = logging.getLogger(__name__)

NO_ROBOT_CONNECTED = "No robot connected"
DEFAULT_SOURCE = "web_client"


class MessageRouter:
    """
    Relay core: registers connections, translates envelopes and forwards them
    to the peers held in the registry.
    """

    def __init__(self, registry: RoleRegistry, notifier: Optional[Notifier] = None):
        self.registry = registry
        self.notifier = notifier or Notifier(registry)

    async def connection_opened(self, connection: Connection) -> None:
        self.registry.register(connection)
        logger.info(
            "%s %s connected from %s",
            connection.role.value,
            connection.id,
            connection.remote_address or "unknown",
        )
        if connection.role is Role.ROBOT:
            await self.notifier.robot_joined(connection)
        else:
            await self.notifier.web_client_joined(connection)

    def release(self, connection: Connection) -> bool:
        """
        Drop ``connection`` from the registry as part of its close event.

        Returns True only the first time, and only if the connection still
        owned its slot, so a replaced or doubly-closed peer announces nothing.
        """
        connection.closed = True
        removed = self.registry.unregister(connection.role, connection.id)
        if removed is None:
            return False
        logger.info("%s %s disconnected", connection.role.value, connection.id)
        return True

    async def announce_departure(self, connection: Connection) -> None:
        if connection.role is Role.ROBOT:
            await self.notifier.robot_left(connection)

    async def handle_message(self, connection: Connection, raw: Union[str, bytes]) -> None:
        try:
            if connection.role is Role.ROBOT:
                message = parse_robot_message(raw)
            else:
                message = parse_client_message(raw)
        except MessageDecodeError as exc:
            logger.warning("Discarding frame from %s: %s", connection.id, exc)
            return

        if isinstance(message, UnrecognizedMessage):
            logger.warning("Unknown message type %r from %s", message.type, connection.id)
            return
        logger.debug("%s from %s", message.type, connection.id)

        if isinstance(message, PingMessage):
            connection.mark_alive()
            await connection.send(PongMessage(timestamp=utc_timestamp()))
        elif connection.role is Role.ROBOT:
            await self._from_robot(connection, message)
        else:
            await self._from_web_client(connection, message)

    async def _from_robot(self, robot: Connection, message: Envelope) -> None:
        timestamp = message.timestamp or utc_timestamp()
        if isinstance(message, LocationReport):
            outbound = RobotLocationMessage(robot_id=robot.id, data=message.data, timestamp=timestamp)
        elif isinstance(message, StatusReport):
            outbound = RobotStatusMessage(robot_id=robot.id, data=message.data, timestamp=timestamp)
        elif isinstance(message, CommandResponseReport):
            outbound = CommandResponseForward(
                robot_id=robot.id, command=message.command, data=message.data, timestamp=timestamp
            )
        else:
            return

        delivered = await self.notifier.to_web_clients(outbound)
        if not delivered:
            logger.debug("No web client to receive %s from %s", outbound.type, robot.id)

    async def _from_web_client(self, client: Connection, message: Envelope) -> None:
        timestamp = message.timestamp or utc_timestamp()
        source = message.source or DEFAULT_SOURCE
        if isinstance(message, CommandMessage):
            outbound = CommandReceivedMessage(command=message.command, source=source, timestamp=timestamp)
        elif isinstance(message, VoiceCommandMessage):
            outbound = VoiceCommandReceivedMessage(
                action=message.action, data=message.data, source=source, timestamp=timestamp
            )
        elif isinstance(message, LocationRequestMessage):
            outbound = LocationRequestReceivedMessage(
                action=message.action, data=message.data, source=source, timestamp=timestamp
            )
        elif isinstance(message, SendLocationMessage):
            outbound = LocationRequestReceivedMessage(
                action="send_current_location", data=message.location, source=source, timestamp=timestamp
            )
        else:
            return

        robots, error = self._command_targets(message.robot_id)
        delivered = await self.notifier.send_all(robots, outbound) if robots else 0
        if not delivered:
            await client.send(ErrorMessage(message=error or NO_ROBOT_CONNECTED, timestamp=utc_timestamp()))
            logger.info("Dropped %s from %s: %s", message.type, client.id, error or NO_ROBOT_CONNECTED)
            return
        logger.info("Forwarded %s from %s to %d robot(s)", outbound.type, client.id, delivered)

    def _command_targets(self, robot_id: Optional[str]) -> Tuple[List[Connection], Optional[str]]:
        if robot_id is not None and not self.registry.single_pair:
            robots = self.registry.lookup(Role.ROBOT, robot_id)
            return robots, None if robots else f"Robot {robot_id} not connected"
        robots = self.registry.lookup(Role.ROBOT)
        return robots, None if robots else NO_ROBOT_CONNECTED
