"""Pydantic models for the relay's WebSocket envelopes."""

from .messages import (
    Role,
    MessageDecodeError,
    Envelope,
    LocationReport,
    StatusReport,
    CommandResponseReport,
    PingMessage,
    CommandMessage,
    VoiceCommandMessage,
    LocationRequestMessage,
    SendLocationMessage,
    UnrecognizedMessage,
    WelcomeMessage,
    RobotConnectedMessage,
    RobotDisconnectedMessage,
    RobotLocationMessage,
    RobotStatusMessage,
    CommandResponseForward,
    CommandReceivedMessage,
    VoiceCommandReceivedMessage,
    LocationRequestReceivedMessage,
    ConnectedRobotsMessage,
    PongMessage,
    ErrorMessage,
    SchemaDocument,
    parse_robot_message,
    parse_client_message,
    utc_timestamp,
)

__all__ = [
    "Role",
    "MessageDecodeError",
    "Envelope",
    "LocationReport",
    "StatusReport",
    "CommandResponseReport",
    "PingMessage",
    "CommandMessage",
    "VoiceCommandMessage",
    "LocationRequestMessage",
    "SendLocationMessage",
    "UnrecognizedMessage",
    "WelcomeMessage",
    "RobotConnectedMessage",
    "RobotDisconnectedMessage",
    "RobotLocationMessage",
    "RobotStatusMessage",
    "CommandResponseForward",
    "CommandReceivedMessage",
    "VoiceCommandReceivedMessage",
    "LocationRequestReceivedMessage",
    "ConnectedRobotsMessage",
    "PongMessage",
    "ErrorMessage",
    "SchemaDocument",
    "parse_robot_message",
    "parse_client_message",
    "utc_timestamp",
]
