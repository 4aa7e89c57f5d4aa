import json

import pytest

from schemas.events import (
    EventParseError,
    JoinRoom,
    LeaveRoom,
    ReceiveMessage,
    SendMessage,
    UserCountUpdate,
    UserJoined,
    parse_inbound,
)


def frame(event, data=None):
    payload = {"event": event}
    if data is not None:
        payload["data"] = data
    return json.dumps(payload)


def test_parse_join_room():
    event = parse_inbound(frame("joinRoom", {"roomId": "room1", "username": "Alice"}))
    assert event == JoinRoom(room_id="room1", username="Alice")


@pytest.mark.parametrize("username", [None, ""])
def test_join_room_username_defaults_to_anonymous(username):
    event = parse_inbound(frame("joinRoom", {"roomId": "r", "username": username}))
    assert event.username == "Anonymous"


def test_join_room_without_data():
    event = parse_inbound(frame("joinRoom"))
    assert event == JoinRoom(room_id="", username="Anonymous")


def test_send_message_fields():
    event = parse_inbound(
        frame("sendMessage", {"roomId": "r", "message": "hi", "code": "print(1)", "language": "python", "extra": 1})
    )
    assert isinstance(event, SendMessage)
    assert (event.room_id, event.message, event.code, event.language) == ("r", "hi", "print(1)", "python")


def test_numeric_room_id_is_coerced():
    assert parse_inbound(frame("leaveRoom", {"roomId": 42})) == LeaveRoom(room_id="42")


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2]",
        json.dumps({"event": "shout", "data": {}}),
        json.dumps({"data": {}}),
        json.dumps({"event": "joinRoom", "data": "room1"}),
        json.dumps({"event": "sendMessage", "data": {"roomId": "r", "message": {"nested": True}}}),
    ],
)
def test_malformed_frames_raise_parse_error(raw):
    with pytest.raises(EventParseError):
        parse_inbound(raw)


def test_outbound_frames_use_wire_names():
    assert UserJoined(username="Bob", user_count=2).to_frame() == {
        "event": "userJoined",
        "data": {"username": "Bob", "userCount": 2},
    }
    assert UserCountUpdate(user_count=3).to_frame() == {"event": "userCountUpdate", "data": {"userCount": 3}}

    message = ReceiveMessage(username="Bob", message="hi", timestamp=1, sender_id="s2")
    assert json.loads(message.to_text()) == {
        "event": "receiveMessage",
        "data": {
            "username": "Bob",
            "message": "hi",
            "code": None,
            "language": None,
            "timestamp": 1,
            "senderId": "s2",
        },
    }
