import asyncio
from typing import Dict, Iterable, List, Optional

from fastapi import WebSocket

from gateway import Notification, RoomTarget, SessionTarget
from logging_config import get_logger
from schemas.events import OutboundEvent

logger = get_logger(__name__)


class ConnectionHub:
    """Live sockets, room subscription groups and per-session outboxes.

    Sends never await: recipients are resolved and the frame is queued with
    ``put_nowait``. Each session's ``writer`` task drains its own queue, so
    delivery to one slow socket does not hold up the event being handled.
    """

    def __init__(self):
        self._sockets: Dict[str, WebSocket] = {}
        self._outboxes: Dict[str, asyncio.Queue] = {}
        # room_id -> {session_id: None}, a dict used as an ordered set
        self._groups: Dict[str, Dict[str, None]] = {}

    def register(self, session_id: str, websocket: WebSocket) -> None:
        self._sockets[session_id] = websocket
        self._outboxes[session_id] = asyncio.Queue()
        logger.debug(f"Registered socket for session {session_id} ({len(self._sockets)} connected)")

    def unregister(self, session_id: str) -> None:
        self._sockets.pop(session_id, None)
        self._outboxes.pop(session_id, None)
        for room_id in self.groups_of(session_id):
            self.leave_group(session_id, room_id)
        logger.debug(f"Unregistered session {session_id} ({len(self._sockets)} connected)")

    def is_registered(self, session_id: str) -> bool:
        return session_id in self._sockets

    def join_group(self, session_id: str, room_id: str) -> None:
        self._groups.setdefault(room_id, {})[session_id] = None

    def leave_group(self, session_id: str, room_id: str) -> None:
        group = self._groups.get(room_id)
        if group is None:
            return
        group.pop(session_id, None)
        if not group:
            del self._groups[room_id]

    def group_members(self, room_id: str) -> List[str]:
        return list(self._groups.get(room_id, {}))

    def groups_of(self, session_id: str) -> List[str]:
        return [room_id for room_id, group in self._groups.items() if session_id in group]

    def pending(self, session_id: str) -> int:
        outbox = self._outboxes.get(session_id)
        return outbox.qsize() if outbox is not None else 0

    def _enqueue(self, session_id: str, event: OutboundEvent) -> bool:
        outbox = self._outboxes.get(session_id)
        if outbox is None:
            logger.debug(f"Dropping {event.event} for unknown session {session_id}")
            return False
        outbox.put_nowait(event.to_text())
        return True

    def send_to_session(self, session_id: str, event: OutboundEvent) -> int:
        return 1 if self._enqueue(session_id, event) else 0

    def send_to_room(self, room_id: str, event: OutboundEvent, skip_session: Optional[str] = None) -> int:
        sent = 0
        for session_id in self.group_members(room_id):
            if session_id == skip_session:
                continue
            if self._enqueue(session_id, event):
                sent += 1
        logger.debug(f"Queued {event.event} for {sent} session(s) in room {room_id}")
        return sent

    def deliver(self, notifications: Iterable[Notification]) -> int:
        sent = 0
        for notification in notifications:
            target = notification.target
            if isinstance(target, SessionTarget):
                sent += self.send_to_session(target.session_id, notification.event)
            elif isinstance(target, RoomTarget):
                sent += self.send_to_room(target.room_id, notification.event, skip_session=target.exclude)
        return sent

    async def writer(self, session_id: str) -> None:
        """Forward queued frames to the session's socket until cancelled.

        A failed send ends the writer; the receive loop notices the broken
        socket and runs the disconnect.
        """
        websocket = self._sockets.get(session_id)
        outbox = self._outboxes.get(session_id)
        if websocket is None or outbox is None:
            return
        while True:
            text = await outbox.get()
            try:
                await websocket.send_text(text)
            except Exception as e:
                logger.warning(f"Send to session {session_id} failed, dropping its outbox: {e}")
                if self._outboxes.get(session_id) is outbox:
                    self._outboxes.pop(session_id, None)
                return
