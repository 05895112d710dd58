import tornado.web

from robot_relay.services.registry import RoleRegistry


class HealthHandler(tornado.web.RequestHandler):
    def initialize(self, registry: RoleRegistry):
        self.registry = registry

    def get(self):
        self.write({"status": "ok", "mode": self.registry.mode.value})


class RobotsHandler(tornado.web.RequestHandler):
    """Roster of connected robots with their address and liveness timestamps."""

    def initialize(self, registry: RoleRegistry):
        self.registry = registry

    def get(self):
        self.write(self.registry.describe())
