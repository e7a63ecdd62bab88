import logging
from datetime import datetime
from types import SimpleNamespace

import pytest
import redis

from studentlink.broadcasting import (
    Channel,
    ChatMessageSent,
    ConcernUpdated,
    MessageSent,
    PrivateChannel,
    TypingStatus,
)
from studentlink.broadcasting.broadcaster import MemoryBackend, RedisBackend, _make_backend
from studentlink.extensions import broadcaster


def _room(room_id=7, participants=(1, 2, 3)):
    return SimpleNamespace(
        id=room_id,
        last_activity_at=None,
        participant_ids=lambda: sorted(participants),
    )

def _user(uid, role="staff"):
    return SimpleNamespace(id=uid, name=f"User {uid}", role=role)

def _message(author_id=1, reply_to=None):
    return SimpleNamespace(
        id=99,
        author_id=author_id,
        author=_user(author_id),
        message="hello",
        message_type="text",
        created_at=None,
        reply_to=reply_to,
        to_dict=lambda: {"id": 99, "message": "hello"},
    )

def test_message_sent_skips_author_channel():
    event = MessageSent(_message(author_id=2), _room())
    names = [c.name for c in event.broadcast_on()]
    assert names == ["chat.room.7.user.1", "chat.room.7.user.3"]
    assert all(isinstance(c, PrivateChannel) for c in event.broadcast_on())
    assert event.broadcast_as() == "message.sent"

def test_message_sent_payload_includes_reply_summary():
    parent = SimpleNamespace(id=5, message="earlier", author=_user(3))
    data = MessageSent(_message(reply_to=parent), _room()).broadcast_with()
    assert data["type"] == "new_message"
    assert data["message"]["author"] == {"id": 1, "name": "User 1", "role": "staff"}
    assert data["message"]["reply_to"] == {"id": 5, "message": "earlier", "author": {"name": "User 3"}}
    assert data["chat_room"]["id"] == 7

def test_chat_message_sent_targets_room_channel():
    event = ChatMessageSent(_room(room_id=4), _message())
    assert event.broadcast_on() == [PrivateChannel("private-chat.room.4")]
    assert event.broadcast_with()["chat_room_id"] == 4

def test_typing_status_excludes_typist():
    event = TypingStatus(_room(participants=(1, 2)), _user(1), is_typing=1)
    assert [c.name for c in event.broadcast_on()] == ["chat.room.7.user.2"]
    assert event.broadcast_as() == "typing.status"
    assert event.broadcast_with()["is_typing"] is True

def test_concern_updated_channels_and_default_name():
    concern = SimpleNamespace(
        id=1, reference_number="CNR2026100001", subject="s", status="pending",
        priority="high", department_id=3, updated_at=None,
    )
    event = ConcernUpdated(concern, action="created")
    assert event.broadcast_on() == [Channel("concerns"), PrivateChannel("concerns.department.3")]
    assert event.broadcast_as() == "ConcernUpdated"
    assert event.broadcast_with()["action"] == "created"

def test_public_and_private_channels_are_distinct():
    assert Channel("x") != PrivateChannel("x")
    assert PrivateChannel("x").private and not Channel("x").private

def test_backend_selection_by_url():
    assert isinstance(_make_backend("memory://"), MemoryBackend)
    assert isinstance(_make_backend(""), MemoryBackend)
    assert isinstance(_make_backend("redis://localhost:6379/0"), RedisBackend)
    with pytest.raises(RuntimeError):
        _make_backend("kafka://broker")

def test_broadcast_records_envelopes_with_prefix(app):
    event = TypingStatus(_room(participants=(1, 2, 3)), _user(1), True)
    with app.app_context():
        app.extensions["broadcaster"]["prefix"] = "sl_"
        try:
            delivered = broadcaster.broadcast(event)
            published = list(broadcaster.published)
        finally:
            app.extensions["broadcaster"]["prefix"] = ""
    assert delivered == 2
    assert [p["channel"] for p in published] == ["sl_chat.room.7.user.2", "sl_chat.room.7.user.3"]
    assert published[0]["event"] == "typing.status"
    assert published[0]["data"]["user"]["id"] == 1

def test_bus_failure_is_logged_not_raised(app, caplog):
    class _Broken:
        def publish(self, channel, envelope):
            raise redis.ConnectionError("bus down")

    event = TypingStatus(_room(participants=(1, 2)), _user(1), True)
    with app.app_context():
        original = app.extensions["broadcaster"]["backend"]
        app.extensions["broadcaster"]["backend"] = _Broken()
        try:
            with caplog.at_level(logging.WARNING):
                delivered = broadcaster.broadcast(event)
        finally:
            app.extensions["broadcaster"]["backend"] = original
    assert delivered == 0
    assert "broadcast.failed" in caplog.text

def test_concern_updated_payload_shape():
    concern = SimpleNamespace(
        id=12, reference_number="CNR2026100012", subject="Lab access", status="in_progress",
        priority="urgent", department_id=3, updated_at=datetime(2026, 10, 2, 9, 30),
        description="not broadcast",
    )
    data = ConcernUpdated(concern).broadcast_with()
    assert data["action"] == "updated"
    assert data["concern"] == {
        "id": 12,
        "reference_number": "CNR2026100012",
        "subject": "Lab access",
        "status": "in_progress",
        "priority": "urgent",
        "department_id": 3,
        "updated_at": "2026-10-02T09:30:00",
    }
    assert set(data) == {"concern", "action", "timestamp"}
    assert datetime.fromisoformat(data["timestamp"])

def test_memory_backend_keeps_recent_envelopes_only():
    backend = MemoryBackend(maxlen=2)
    for n in range(3):
        backend.publish("concerns", {"event": "e", "channel": "concerns", "data": {"n": n}})
    assert [p["data"]["n"] for p in backend.published] == [1, 2]
