"""Wire events exchanged over the room WebSocket.

Every frame is a JSON object ``{"event": <name>, "data": {...}}``. Field
names inside ``data`` are camelCase on the wire and snake_case in Python.
"""
import json
from typing import ClassVar, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from constants import ANONYMOUS


class EventParseError(ValueError):
    """Raised when an inbound frame cannot be turned into a known event."""


class InboundEvent(BaseModel):
    event: ClassVar[str]

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="ignore")


class JoinRoom(InboundEvent):
    event: ClassVar[str] = "joinRoom"

    room_id: str = Field(default="", alias="roomId")
    username: str = ANONYMOUS

    @field_validator("room_id", mode="before")
    @classmethod
    def _missing_room(cls, value):
        return "" if value is None else value

    @field_validator("username", mode="before")
    @classmethod
    def _default_username(cls, value):
        # null and "" both fall back, matching the lookup-time default
        return value if value else ANONYMOUS


class SendMessage(InboundEvent):
    event: ClassVar[str] = "sendMessage"

    room_id: str = Field(default="", alias="roomId")
    message: Optional[str] = None
    code: Optional[str] = None
    language: Optional[str] = None

    @field_validator("room_id", mode="before")
    @classmethod
    def _missing_room(cls, value):
        return "" if value is None else value


class LeaveRoom(InboundEvent):
    event: ClassVar[str] = "leaveRoom"

    room_id: str = Field(default="", alias="roomId")

    @field_validator("room_id", mode="before")
    @classmethod
    def _missing_room(cls, value):
        return "" if value is None else value


class OutboundEvent(BaseModel):
    event: ClassVar[str]

    model_config = ConfigDict(populate_by_name=True)

    def to_frame(self) -> dict:
        return {"event": self.event, "data": self.model_dump(by_alias=True)}

    def to_text(self) -> str:
        return json.dumps(self.to_frame())


class Connected(OutboundEvent):
    event: ClassVar[str] = "connected"

    session_id: str = Field(alias="sessionId")


class UserJoined(OutboundEvent):
    event: ClassVar[str] = "userJoined"

    username: str
    user_count: int = Field(alias="userCount")


class UserCountUpdate(OutboundEvent):
    # Part of the wire contract; no room transition emits it
    event: ClassVar[str] = "userCountUpdate"

    user_count: int = Field(alias="userCount")


class RoomInfo(OutboundEvent):
    event: ClassVar[str] = "roomInfo"

    user_count: int = Field(alias="userCount")
    room_id: str = Field(alias="roomId")


class ReceiveMessage(OutboundEvent):
    event: ClassVar[str] = "receiveMessage"

    username: str
    message: Optional[str] = None
    code: Optional[str] = None
    language: Optional[str] = None
    timestamp: int
    sender_id: str = Field(alias="senderId")


class UserLeft(OutboundEvent):
    event: ClassVar[str] = "userLeft"

    username: str
    user_count: int = Field(alias="userCount")


INBOUND_EVENTS: Dict[str, Type[InboundEvent]] = {
    model.event: model for model in (JoinRoom, SendMessage, LeaveRoom)
}


def parse_inbound(raw: str) -> InboundEvent:
    """Validate one inbound text frame and return the typed event."""
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError as e:
        raise EventParseError(f"frame is not valid JSON: {e}") from e

    if not isinstance(frame, dict):
        raise EventParseError("frame must be a JSON object")

    name = frame.get("event")
    model = INBOUND_EVENTS.get(name) if isinstance(name, str) else None
    if model is None:
        raise EventParseError(f"unknown event: {name!r}")

    data = frame.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise EventParseError(f"payload of {name} must be a JSON object")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise EventParseError(f"invalid payload for {name}: {e.error_count()} error(s)") from e
