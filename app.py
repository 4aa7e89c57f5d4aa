from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from routers.health import health_router
from routers.rooms import rooms_router
from connections import ConnectionHub
from gateway import ConnectionGateway, Notification
from registry import RoomRegistry
from schemas.events import Connected, EventParseError, JoinRoom, LeaveRoom, parse_inbound
from constants import ALLOWED_ORIGINS, LOG_FILE, LOG_LEVEL
from logging_config import get_logger, setup_logging
from typing import List, Optional
import asyncio
import uuid

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def origin_allowed(origin: Optional[str], allowed_origins: List[str]) -> bool:
    # Non-browser clients send no Origin header
    if origin is None or "*" in allowed_origins:
        return True
    return origin in allowed_origins


def process_frame(gateway: ConnectionGateway, hub: ConnectionHub, session_id: str, raw: str) -> List[Notification]:
    """Handle one inbound text frame from start to queued delivery.

    Nothing in here awaits, so the registry change, the group change and the
    fan-out for this frame complete before any other frame is looked at.
    """
    try:
        event = parse_inbound(raw)
    except EventParseError as e:
        logger.warning(f"Dropping frame from session {session_id}: {e}")
        return []

    notifications = gateway.handle(session_id, event)
    if gateway.is_connected(session_id):
        if isinstance(event, JoinRoom):
            hub.join_group(session_id, event.room_id)
        elif isinstance(event, LeaveRoom):
            hub.leave_group(session_id, event.room_id)
    hub.deliver(notifications)
    return notifications


def close_session(gateway: ConnectionGateway, hub: ConnectionHub, session_id: str) -> List[Notification]:
    notifications = gateway.disconnect(session_id)
    hub.unregister(session_id)
    hub.deliver(notifications)
    return notifications


async def websocket_endpoint(websocket: WebSocket):
    """Room relay socket. Frames are ``{"event": ..., "data": {...}}`` JSON objects."""
    state = websocket.app.state
    gateway: ConnectionGateway = state.gateway
    hub: ConnectionHub = state.hub

    origin = websocket.headers.get("origin")
    if not origin_allowed(origin, state.allowed_origins):
        logger.warning(f"WebSocket connection rejected: origin {origin} not allowed")
        await websocket.close(code=1008, reason="Origin not allowed")
        return

    await websocket.accept()
    session_id = str(uuid.uuid4())
    hub.register(session_id, websocket)
    gateway.connect(session_id)
    hub.send_to_session(session_id, Connected(session_id=session_id))
    writer = asyncio.create_task(hub.writer(session_id))

    try:
        message_count = 0
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket disconnected for session {session_id} (code {message.get('code')})")
                break
            data = message.get("text")
            if data is None:
                logger.warning(f"Ignoring binary frame from session {session_id}")
                continue
            message_count += 1
            logger.debug(f"Received frame #{message_count} from session {session_id}")
            process_frame(gateway, hub, session_id, data)
    except Exception as e:
        logger.error(f"WebSocket error for session {session_id}: {e}", exc_info=True)
    finally:
        close_session(gateway, hub, session_id)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")


def create_app(registry: Optional[RoomRegistry] = None, allowed_origins: Optional[List[str]] = None) -> FastAPI:
    allowed_origins = allowed_origins if allowed_origins is not None else ALLOWED_ORIGINS

    app = FastAPI(title="CodeRoom Relay")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.registry = registry if registry is not None else RoomRegistry()
    app.state.gateway = ConnectionGateway(app.state.registry)
    app.state.hub = ConnectionHub()
    app.state.allowed_origins = allowed_origins

    app.include_router(health_router)
    app.include_router(rooms_router)
    app.add_api_websocket_route("/ws", websocket_endpoint)

    logger.info(f"FastAPI application initialized (allowed origins: {', '.join(allowed_origins)})")
    return app


app = create_app()
