import asyncio
import logging
import os
import signal
from typing import Optional

import tornado.web

from robot_relay.config import RelaySettings
from robot_relay.handlers import DocsHandler, HealthHandler, RelayWebSocketHandler, RobotsHandler
from robot_relay.models import Role
from robot_relay.services.classifier import ConnectionClassifier
from robot_relay.services.heartbeat import HeartbeatMonitor
from robot_relay.services.registry import RegistryMode, RoleRegistry
from robot_relay.services.router import MessageRouter

SHUTDOWN_CLOSE_CODE = 1001


def make_app(settings: Optional[RelaySettings] = None) -> tornado.web.Application:
    settings = settings or RelaySettings()
    registry = RoleRegistry(RegistryMode(settings.mode))
    router = MessageRouter(registry)
    classifier = ConnectionClassifier(settings.browser_signatures)
    heartbeat = HeartbeatMonitor(registry, interval=settings.heartbeat_interval)
    ws_args = dict(router=router, classifier=classifier)

    return tornado.web.Application(
        [
            (r"/health", HealthHandler, dict(registry=registry)),
            (r"/robots", RobotsHandler, dict(registry=registry)),
            (r"/docs", DocsHandler),
            (r"/robot", RelayWebSocketHandler, dict(ws_args, role_hint=Role.ROBOT)),
            (r"/web", RelayWebSocketHandler, dict(ws_args, role_hint=Role.WEB_CLIENT)),
            (r"/", RelayWebSocketHandler, ws_args),
        ],
        registry=registry,
        heartbeat=heartbeat,
    )


def setup_logger(name, level="INFO"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def shutdown(app: tornado.web.Application) -> None:
    app.settings["heartbeat"].stop()
    for connection in app.settings["registry"].connections():
        connection.close(code=SHUTDOWN_CLOSE_CODE, reason="Server shutting down")


async def serve(settings: RelaySettings) -> None:
    logger = logging.getLogger("robot_relay")
    app = make_app(settings)
    try:
        server = app.listen(port=settings.port, address=settings.address)
    except OSError as exc:
        logger.error(f"Could not bind {settings.address}:{settings.port}: {exc}")
        raise SystemExit(1) from exc
    logger.info(f"Application startup complete ({settings.mode} mode).")
    logger.info(f"Relay running on ws://{settings.address}:{settings.port} (Press Ctrl+C to quit)")
    app.settings["heartbeat"].start()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass
    await stop_event.wait()

    logger.info("Shutting down relay...")
    shutdown(app)
    server.stop()
    await asyncio.sleep(0.1)
    logger.info("Server closed")


def main() -> None:
    settings = RelaySettings.from_env()
    logger = setup_logger("robot_relay", settings.log_level)
    logger.info(f"Started server process {os.getpid()}")
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
