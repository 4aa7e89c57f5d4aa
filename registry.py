from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional, Tuple

from constants import ANONYMOUS
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Member:
    session_id: str
    display_name: str


class Departure(NamedTuple):
    """A membership removed by ``disconnect_all``."""
    room_id: str
    display_name: str
    user_count: int


class RoomRegistry:
    """In-memory mapping of room ids to their members.

    Rooms are kept as ``{session_id: display_name}`` dicts so member order is
    join order and rooms iterate in creation order. A room is dropped as soon
    as its last member leaves. No method raises; absence is reported as
    ``None``, ``0`` or an empty list.
    """

    def __init__(self):
        self._rooms: Dict[str, Dict[str, str]] = {}

    def join(self, room_id: str, session_id: str, display_name: Optional[str]) -> int:
        display_name = display_name or ANONYMOUS
        members = self._rooms.get(room_id)
        if members is None:
            members = self._rooms[room_id] = {}
            logger.info(f"Created room {room_id}")
        if session_id in members:
            logger.debug(f"Session {session_id} already in room {room_id}, keeping '{members[session_id]}'")
        else:
            members[session_id] = display_name
            logger.debug(f"Session {session_id} ({display_name}) joined room {room_id}")
        return len(members)

    def leave(self, room_id: str, session_id: str) -> Optional[Tuple[str, int]]:
        members = self._rooms.get(room_id)
        if members is None or session_id not in members:
            logger.debug(f"Session {session_id} is not in room {room_id}, nothing to leave")
            return None
        display_name = members.pop(session_id)
        user_count = len(members)
        logger.debug(f"Session {session_id} ({display_name}) left room {room_id} ({user_count} remaining)")
        if not members:
            del self._rooms[room_id]
            logger.info(f"Room {room_id} is empty, deleted")
        return display_name, user_count

    def disconnect_all(self, session_id: str) -> List[Departure]:
        """Remove the session from every room, in room creation order."""
        departures = []
        for room_id in [r for r, members in self._rooms.items() if session_id in members]:
            display_name, user_count = self.leave(room_id, session_id)
            departures.append(Departure(room_id, display_name, user_count))
        if departures:
            logger.debug(f"Session {session_id} swept from {len(departures)} room(s)")
        return departures

    def lookup_display_name(self, room_id: str, session_id: str) -> Optional[str]:
        return self._rooms.get(room_id, {}).get(session_id)

    def user_count(self, room_id: str) -> int:
        return len(self._rooms.get(room_id, {}))

    def members(self, room_id: str) -> List[Member]:
        return [Member(sid, name) for sid, name in self._rooms.get(room_id, {}).items()]

    def room_ids(self) -> List[str]:
        return list(self._rooms)

    def rooms_of(self, session_id: str) -> List[str]:
        return [room_id for room_id, members in self._rooms.items() if session_id in members]

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
