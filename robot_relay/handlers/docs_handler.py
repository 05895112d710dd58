import tornado.web

from robot_relay.models import (
    CommandMessage,
    CommandReceivedMessage,
    CommandResponseForward,
    CommandResponseReport,
    ConnectedRobotsMessage,
    ErrorMessage,
    LocationReport,
    LocationRequestMessage,
    LocationRequestReceivedMessage,
    PingMessage,
    PongMessage,
    RobotConnectedMessage,
    RobotDisconnectedMessage,
    RobotLocationMessage,
    RobotStatusMessage,
    SchemaDocument,
    SendLocationMessage,
    StatusReport,
    VoiceCommandMessage,
    VoiceCommandReceivedMessage,
    WelcomeMessage,
)


def _schema(model) -> dict:
    return model.model_json_schema(by_alias=True)


class DocsHandler(tornado.web.RequestHandler):
    def get(self):
        schema = SchemaDocument(
            websocket_endpoints={
                "auto": "/",
                "robot": "/robot",
                "web_client": "/web",
            },
            inbound_messages={
                "robot": {
                    "location": _schema(LocationReport),
                    "status": _schema(StatusReport),
                    "command_response": _schema(CommandResponseReport),
                    "ping": _schema(PingMessage),
                },
                "web_client": {
                    "command": _schema(CommandMessage),
                    "voice_command": _schema(VoiceCommandMessage),
                    "location_request": _schema(LocationRequestMessage),
                    "send_location": _schema(SendLocationMessage),
                    "ping": _schema(PingMessage),
                },
            },
            outbound_messages={
                "welcome": _schema(WelcomeMessage),
                "robot_connected": _schema(RobotConnectedMessage),
                "robot_disconnected": _schema(RobotDisconnectedMessage),
                "robot_location": _schema(RobotLocationMessage),
                "robot_status": _schema(RobotStatusMessage),
                "command_response": _schema(CommandResponseForward),
                "command_received": _schema(CommandReceivedMessage),
                "voice_command_received": _schema(VoiceCommandReceivedMessage),
                "location_request_received": _schema(LocationRequestReceivedMessage),
                "connected_robots": _schema(ConnectedRobotsMessage),
                "pong": _schema(PongMessage),
                "error": _schema(ErrorMessage),
            },
            notes=[
                "All WebSocket messages are JSON text frames with a 'type' field.",
                "On '/', a browser User-Agent is treated as a web client and anything else as a robot.",
                "Commands sent while no robot is connected are answered with an 'error' message and dropped.",
                "In multi-robot mode a command may carry 'robotId' to target a single robot.",
            ],
        )
        self.set_header("Content-Type", "application/json")
        self.write(schema.model_dump(mode="json"))
