import logging
from typing import Iterable

from robot_relay.models import (
    ConnectedRobotsMessage,
    Envelope,
    RobotConnectedMessage,
    RobotDisconnectedMessage,
    Role,
    WelcomeMessage,
    utc_timestamp,
)
from robot_relay.services.registry import Connection, RoleRegistry

logger = logging.getLogger(__name__)

WELCOME_TEXT = "Connected to Robot Controller"


class Notifier:
    """Pushes welcome, roster and connect/disconnect events to peers."""

    def __init__(self, registry: RoleRegistry):
        self.registry = registry

    async def send_all(self, connections: Iterable[Connection], message: Envelope) -> int:
        delivered = 0
        for connection in list(connections):
            if await connection.send(message):
                delivered += 1
        return delivered

    async def to_web_clients(self, message: Envelope) -> int:
        # Robots never receive each other's telemetry.
        return await self.send_all(self.registry.lookup(Role.WEB_CLIENT), message)

    async def roster(self) -> None:
        await self.to_web_clients(
            ConnectedRobotsMessage(robots=self.registry.list_ids(Role.ROBOT), timestamp=utc_timestamp())
        )

    async def robot_joined(self, robot: Connection) -> None:
        await robot.send(WelcomeMessage(message=WELCOME_TEXT, robot_id=robot.id, timestamp=utc_timestamp()))
        await self.to_web_clients(RobotConnectedMessage(robot_id=robot.id, timestamp=utc_timestamp()))
        if not self.registry.single_pair:
            await self.roster()

    async def robot_left(self, robot: Connection) -> None:
        await self.to_web_clients(RobotDisconnectedMessage(robot_id=robot.id, timestamp=utc_timestamp()))
        if not self.registry.single_pair:
            await self.roster()

    async def web_client_joined(self, client: Connection) -> None:
        robot_ids = self.registry.list_ids(Role.ROBOT)
        await client.send(
            WelcomeMessage(
                message=f"{WELCOME_TEXT} as web client",
                robot_connected=bool(robot_ids),
                is_web_client=True,
                timestamp=utc_timestamp(),
            )
        )
        if not self.registry.single_pair:
            await client.send(ConnectedRobotsMessage(robots=robot_ids, timestamp=utc_timestamp()))
        elif robot_ids:
            # Catch a late-joining client up without waiting for robot traffic.
            await client.send(RobotConnectedMessage(robot_id=robot_ids[0], timestamp=utc_timestamp()))
