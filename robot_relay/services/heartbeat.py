import logging
from typing import Optional

from tornado.ioloop import PeriodicCallback

from robot_relay.services.registry import RoleRegistry

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """
    Pings every registered connection on a fixed interval.

    A connection that has not answered the ping sent on the previous tick is
    terminated; the resulting close event performs the registry cleanup.
    """

    def __init__(self, registry: RoleRegistry, interval: float = 30.0):
        self.registry = registry
        self.interval = interval
        self._callback: Optional[PeriodicCallback] = None

    @property
    def running(self) -> bool:
        return self._callback is not None and self._callback.is_running()

    def start(self) -> None:
        if self.running:
            return
        self._callback = PeriodicCallback(self.tick, self.interval * 1000)
        self._callback.start()
        logger.info("Heartbeat started (every %.1fs)", self.interval)

    def stop(self) -> None:
        if self._callback is not None:
            self._callback.stop()
            self._callback = None

    def tick(self) -> None:
        for connection in self.registry.connections():
            if not connection.is_alive:
                logger.info("Terminating unresponsive %s %s", connection.role.value, connection.id)
                connection.terminate()
                continue
            connection.is_alive = False
            connection.ping()
