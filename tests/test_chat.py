from studentlink.extensions import broadcaster, db
from studentlink.models import ChatRoom
from studentlink.models.user import ROLE_STAFF, ROLE_STUDENT


def _room(client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    student = make_user(ROLE_STUDENT)
    staff = make_user(ROLE_STAFF, department_id=dept)
    cid = make_concern(dept, student_id=student, assigned_to=staff)
    r = client.get(f"/api/chat/rooms/{cid}/get-or-create", headers=auth_headers(student))
    assert r.status_code == 200
    return r.get_json()["data"]["id"], student, staff

def test_get_or_create_is_stable(client, make_department, make_user, make_concern, auth_headers):
    room_id, student, staff = _room(client, make_department, make_user, make_concern, auth_headers)
    r = client.get("/api/chat/rooms", headers=auth_headers(staff))
    assert [room["id"] for room in r.get_json()["data"]] == [room_id]
    assert r.get_json()["count"] == 1

def test_message_is_broadcast_to_other_participants(app, client, make_department, make_user, make_concern, auth_headers):
    room_id, student, staff = _room(client, make_department, make_user, make_concern, auth_headers)
    r = client.post(f"/api/chat/rooms/{room_id}/messages", json={"message": "Any update?"}, headers=auth_headers(student))
    assert r.status_code == 201
    assert r.get_json()["data"]["author_id"] == student

    with app.app_context():
        channels = [(p["event"], p["channel"]) for p in broadcaster.published]
    assert ("message.sent", f"chat.room.{room_id}.user.{staff}") in channels
    assert ("message.sent", f"private-chat.room.{room_id}") in channels
    assert ("message.sent", f"chat.room.{room_id}.user.{student}") not in channels

def test_internal_notes_hidden_from_students(app, client, make_department, make_user, make_concern, auth_headers):
    room_id, student, staff = _room(client, make_department, make_user, make_concern, auth_headers)
    client.post(f"/api/chat/rooms/{room_id}/messages", json={"message": "Visible"}, headers=auth_headers(staff))
    with app.app_context():
        broadcaster.backend.clear()
    client.post(
        f"/api/chat/rooms/{room_id}/messages",
        json={"message": "Check the registrar first", "is_internal": True},
        headers=auth_headers(staff),
    )
    with app.app_context():
        assert broadcaster.published == []

    seen_by_student = client.get(f"/api/chat/rooms/{room_id}/messages", headers=auth_headers(student)).get_json()["data"]
    seen_by_staff = client.get(f"/api/chat/rooms/{room_id}/messages", headers=auth_headers(staff)).get_json()["data"]
    assert [m["message"] for m in seen_by_student["messages"]] == ["Visible"]
    assert seen_by_staff["total"] == 2

def test_student_cannot_mark_internal(client, make_department, make_user, make_concern, auth_headers):
    room_id, student, _ = _room(client, make_department, make_user, make_concern, auth_headers)
    r = client.post(
        f"/api/chat/rooms/{room_id}/messages",
        json={"message": "secret?", "is_internal": True},
        headers=auth_headers(student),
    )
    assert r.get_json()["data"]["is_internal"] is False

def test_message_validation(client, make_department, make_user, make_concern, auth_headers):
    room_id, student, _ = _room(client, make_department, make_user, make_concern, auth_headers)
    r = client.post(
        f"/api/chat/rooms/{room_id}/messages",
        json={"message": "", "message_type": "video", "reply_to_id": 999},
        headers=auth_headers(student),
    )
    assert r.status_code == 422
    assert set(r.get_json()["errors"]) == {"message", "message_type", "reply_to_id"}

def test_outsiders_are_rejected(client, make_department, make_user, make_concern, auth_headers):
    room_id, _, _ = _room(client, make_department, make_user, make_concern, auth_headers)
    stranger = make_user(ROLE_STUDENT)
    r = client.post(f"/api/chat/rooms/{room_id}/messages", json={"message": "hi"}, headers=auth_headers(stranger))
    assert r.status_code == 403
    assert client.get("/api/chat/rooms/99999/messages", headers=auth_headers(stranger)).status_code == 404

def test_close_room(app, client, make_department, make_user, make_concern, auth_headers):
    room_id, student, staff = _room(client, make_department, make_user, make_concern, auth_headers)
    assert client.post(f"/api/chat/rooms/{room_id}/close", headers=auth_headers(student)).status_code == 403

    r = client.post(f"/api/chat/rooms/{room_id}/close", headers=auth_headers(staff))
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "closed"
    with app.app_context():
        assert db.session.get(ChatRoom, room_id).closed_by == staff

    r = client.post(f"/api/chat/rooms/{room_id}/messages", json={"message": "hello?"}, headers=auth_headers(student))
    assert r.status_code == 400
    assert r.get_json()["message"] == "Chat room is closed"

def test_typing_indicator(app, client, make_department, make_user, make_concern, auth_headers):
    room_id, student, staff = _room(client, make_department, make_user, make_concern, auth_headers)
    with app.app_context():
        broadcaster.backend.clear()
    r = client.post(f"/api/chat/rooms/{room_id}/typing", json={"is_typing": False}, headers=auth_headers(staff))
    assert r.get_json()["data"] == {"delivered": 1}
    with app.app_context():
        event = broadcaster.published[0]
    assert event["channel"] == f"chat.room.{room_id}.user.{student}"
    assert event["data"]["is_typing"] is False

def test_typing_requires_json_boolean(app, client, make_department, make_user, make_concern, auth_headers):
    room_id, _, staff = _room(client, make_department, make_user, make_concern, auth_headers)
    with app.app_context():
        broadcaster.backend.clear()
    r = client.post(f"/api/chat/rooms/{room_id}/typing", json={"is_typing": "false"}, headers=auth_headers(staff))
    assert r.status_code == 422
    assert "is_typing" in r.get_json()["errors"]
    with app.app_context():
        assert broadcaster.published == []
