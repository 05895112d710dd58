import json
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


class Role(str, Enum):
    ROBOT = "robot"
    WEB_CLIENT = "web_client"


class MessageDecodeError(ValueError):
    """Raised when an inbound frame is not a valid envelope."""


def utc_timestamp() -> str:
    """ISO8601 UTC timestamp with millisecond precision and a trailing Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: Optional[str] = Field(default=None, description="ISO8601 timestamp of the event.")

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, value):
        # Numbers are epoch milliseconds; anything else unusable is restamped by the relay.
        if isinstance(value, str) or value is None:
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
            return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


# Inbound: robot -> relay


class LocationReport(Envelope):
    """Position update from the robot, e.g. {lat, lng, timestamp}."""

    type: Literal["location"] = "location"
    data: Optional[Any] = Field(default=None, description="Location payload, usually {lat, lng}.")


class StatusReport(Envelope):
    """Status update from the robot (battery, speed, mode...)."""

    type: Literal["status"] = "status"
    data: Optional[Any] = Field(default=None, description="Status payload.")


class CommandResponseReport(Envelope):
    type: Literal["command_response"] = "command_response"
    command: Optional[str] = Field(default=None, description="Command being acknowledged.")
    data: Optional[Any] = Field(default=None, description="Response payload.")


class PingMessage(Envelope):
    type: Literal["ping"] = "ping"


# Inbound: web client -> relay


class CommandMessage(Envelope):
    """Button press from the dashboard."""

    type: Literal["command"] = "command"
    command: str = Field(..., description="Command name, e.g. 'forward' or 'stop'.")
    source: Optional[str] = Field(default=None, description="Originating UI component.")
    robot_id: Optional[str] = Field(
        default=None, alias="robotId", description="Target robot (multi-robot mode only)."
    )


class VoiceCommandMessage(Envelope):
    type: Literal["voice_command"] = "voice_command"
    action: Optional[str] = Field(default=None, description="Voice action, e.g. 'start_recording'.")
    data: Optional[Dict[str, Any]] = None
    source: Optional[str] = None
    robot_id: Optional[str] = Field(default=None, alias="robotId")


class LocationRequestMessage(Envelope):
    type: Literal["location_request"] = "location_request"
    action: Optional[str] = Field(default=None, description="e.g. 'send_current_location'.")
    data: Optional[Dict[str, Any]] = Field(default=None, description="Operator location payload.")
    source: Optional[str] = None
    robot_id: Optional[str] = Field(default=None, alias="robotId")


class SendLocationMessage(Envelope):
    """Legacy dashboard form of a location request."""

    type: Literal["send_location"] = "send_location"
    location: Optional[Dict[str, Any]] = None
    source: Optional[str] = None
    robot_id: Optional[str] = Field(default=None, alias="robotId")


class UnrecognizedMessage(BaseModel):
    """Fallback for envelopes whose type the receiving role does not handle."""

    type: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


RobotInbound = Annotated[
    Union[LocationReport, StatusReport, CommandResponseReport, PingMessage],
    Field(discriminator="type"),
]
ClientInbound = Annotated[
    Union[CommandMessage, VoiceCommandMessage, LocationRequestMessage, SendLocationMessage, PingMessage],
    Field(discriminator="type"),
]

ROBOT_MESSAGE_TYPES = frozenset({"location", "status", "command_response", "ping"})
CLIENT_MESSAGE_TYPES = frozenset({"command", "voice_command", "location_request", "send_location", "ping"})

_robot_adapter = TypeAdapter(RobotInbound)
_client_adapter = TypeAdapter(ClientInbound)


def _decode(raw: Union[str, bytes], known_types: frozenset, adapter: TypeAdapter):
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
        raise MessageDecodeError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MessageDecodeError(f"expected a JSON object, got {type(payload).__name__}")

    msg_type = payload.get("type")
    if not isinstance(msg_type, str):
        return UnrecognizedMessage(type=None if msg_type is None else repr(msg_type), payload=payload)
    if msg_type not in known_types:
        return UnrecognizedMessage(type=msg_type, payload=payload)
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        raise MessageDecodeError(f"invalid '{msg_type}' message: {exc}") from exc


def parse_robot_message(raw: Union[str, bytes]):
    return _decode(raw, ROBOT_MESSAGE_TYPES, _robot_adapter)


def parse_client_message(raw: Union[str, bytes]):
    return _decode(raw, CLIENT_MESSAGE_TYPES, _client_adapter)


# Outbound: relay -> peers


class WelcomeMessage(Envelope):
    """Sent once to every connection right after the handshake."""

    type: Literal["welcome"] = "welcome"
    message: str
    robot_id: Optional[str] = Field(default=None, alias="robotId", description="Assigned id (robots).")
    robot_connected: Optional[bool] = Field(
        default=None, alias="robotConnected", description="Pairing state (web clients)."
    )
    is_web_client: Optional[bool] = Field(default=None, alias="isWebClient")


class RobotConnectedMessage(Envelope):
    type: Literal["robot_connected"] = "robot_connected"
    robot_id: str = Field(..., alias="robotId")


class RobotDisconnectedMessage(Envelope):
    type: Literal["robot_disconnected"] = "robot_disconnected"
    robot_id: str = Field(..., alias="robotId")


class RobotLocationMessage(Envelope):
    type: Literal["robot_location"] = "robot_location"
    robot_id: str = Field(..., alias="robotId")
    data: Optional[Any] = None


class RobotStatusMessage(Envelope):
    type: Literal["robot_status"] = "robot_status"
    robot_id: str = Field(..., alias="robotId")
    data: Optional[Any] = None


class CommandResponseForward(Envelope):
    type: Literal["command_response"] = "command_response"
    robot_id: str = Field(..., alias="robotId")
    command: Optional[str] = None
    data: Optional[Any] = None


class CommandReceivedMessage(Envelope):
    type: Literal["command_received"] = "command_received"
    command: str
    source: str = "web_client"


class VoiceCommandReceivedMessage(Envelope):
    type: Literal["voice_command_received"] = "voice_command_received"
    action: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    source: str = "web_client"


class LocationRequestReceivedMessage(Envelope):
    type: Literal["location_request_received"] = "location_request_received"
    action: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    source: str = "web_client"


class ConnectedRobotsMessage(Envelope):
    """Roster of registered robot ids, in connection order."""

    type: Literal["connected_robots"] = "connected_robots"
    robots: List[str] = Field(default_factory=list)


class PongMessage(Envelope):
    type: Literal["pong"] = "pong"


class ErrorMessage(Envelope):
    type: Literal["error"] = "error"
    message: str


class SchemaDocument(BaseModel):
    """Documentation payload served at /docs for quick reference."""

    websocket_endpoints: Dict[str, str]
    inbound_messages: Dict[str, Dict[str, Any]]
    outbound_messages: Dict[str, Dict[str, Any]]
    notes: List[str] = []
