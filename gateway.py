import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Set, Union

from constants import ANONYMOUS
from logging_config import get_logger
from registry import RoomRegistry
from schemas.events import (
    InboundEvent,
    JoinRoom,
    LeaveRoom,
    OutboundEvent,
    ReceiveMessage,
    RoomInfo,
    SendMessage,
    UserJoined,
    UserLeft,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionTarget:
    session_id: str


@dataclass(frozen=True)
class RoomTarget:
    """Every session subscribed to ``room_id``, minus ``exclude`` if set."""
    room_id: str
    exclude: Optional[str] = None


Target = Union[SessionTarget, RoomTarget]


@dataclass(frozen=True)
class Notification:
    target: Target
    event: OutboundEvent


def now_millis() -> int:
    return int(time.time() * 1000)


class ConnectionGateway:
    """Turns inbound session events into registry calls and notifications.

    Handlers only mutate the registry and return the notifications that
    describe the change; they never touch a socket. Sessions are
    ``Connected`` between ``connect`` and ``disconnect``; events for any
    other session id are ignored.
    """

    def __init__(self, registry: RoomRegistry, clock: Callable[[], int] = now_millis):
        self.registry = registry
        self.clock = clock
        self._connected: Set[str] = set()

    def connect(self, session_id: str) -> None:
        self._connected.add(session_id)
        logger.info(f"Session {session_id} connected")

    def is_connected(self, session_id: str) -> bool:
        return session_id in self._connected

    def handle(self, session_id: str, event: InboundEvent) -> List[Notification]:
        if session_id not in self._connected:
            logger.warning(f"Ignoring {event.event} from closed or unknown session {session_id}")
            return []
        if isinstance(event, JoinRoom):
            return self.on_join(session_id, event)
        if isinstance(event, SendMessage):
            return self.on_message(session_id, event)
        if isinstance(event, LeaveRoom):
            return self.on_leave(session_id, event)
        logger.warning(f"No handler for event {event.event}")
        return []

    def on_join(self, session_id: str, event: JoinRoom) -> List[Notification]:
        user_count = self.registry.join(event.room_id, session_id, event.username)
        logger.info(f"{event.username} ({session_id}) joined room {event.room_id}, {user_count} user(s)")
        return [
            Notification(RoomTarget(event.room_id), UserJoined(username=event.username, user_count=user_count)),
            Notification(SessionTarget(session_id), RoomInfo(user_count=user_count, room_id=event.room_id)),
        ]

    def on_message(self, session_id: str, event: SendMessage) -> List[Notification]:
        username = self.registry.lookup_display_name(event.room_id, session_id) or ANONYMOUS
        logger.debug(f"Message from {username} ({session_id}) to room {event.room_id}")
        message = ReceiveMessage(
            username=username,
            message=event.message,
            code=event.code,
            language=event.language,
            timestamp=self.clock(),
            sender_id=session_id,
        )
        return [Notification(RoomTarget(event.room_id, exclude=session_id), message)]

    def on_leave(self, session_id: str, event: LeaveRoom) -> List[Notification]:
        result = self.registry.leave(event.room_id, session_id)
        if result is None:
            return []
        username, user_count = result
        logger.info(f"{username} ({session_id}) left room {event.room_id}, {user_count} user(s)")
        return [Notification(RoomTarget(event.room_id), UserLeft(username=username, user_count=user_count))]

    def disconnect(self, session_id: str) -> List[Notification]:
        if session_id not in self._connected:
            return []
        self._connected.discard(session_id)
        notifications = [
            Notification(RoomTarget(d.room_id), UserLeft(username=d.display_name, user_count=d.user_count))
            for d in self.registry.disconnect_all(session_id)
        ]
        logger.info(f"Session {session_id} disconnected, left {len(notifications)} room(s)")
        return notifications
