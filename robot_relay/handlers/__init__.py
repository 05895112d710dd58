from .status_handlers import HealthHandler, RobotsHandler
from .docs_handler import DocsHandler
from .relay_ws_handler import RelayWebSocketHandler

__all__ = [
    "HealthHandler",
    "RobotsHandler",
    "DocsHandler",
    "RelayWebSocketHandler",
]
