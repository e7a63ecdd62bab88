from flask import request
from flask_login import current_user

from studentlink.responses import ok
from studentlink.services import chat as svc
from studentlink.utils.helpers import safe_int
from . import bp


@bp.get("/rooms")
def rooms():
    rows = svc.rooms_for(current_user)
    return ok([r.to_dict() for r in rows], count=len(rows))

@bp.get("/rooms/<int:concern_id>/get-or-create")
def get_or_create(concern_id: int):
    return ok(svc.get_or_create(current_user, concern_id).to_dict())

@bp.get("/rooms/<int:room_id>/messages")
def messages(room_id: int):
    return ok(svc.list_messages(current_user, room_id, safe_int(request.args.get("page"), 1)))

@bp.post("/rooms/<int:room_id>/messages")
def send_message(room_id: int):
    message = svc.post_message(current_user, room_id, request.get_json(silent=True) or {})
    return ok(message.to_dict(), message="Message sent", status=201)

@bp.post("/rooms/<int:room_id>/typing")
def typing(room_id: int):
    data = request.get_json(silent=True) or {}
    delivered = svc.typing(current_user, room_id, data.get("is_typing", True))
    return ok({"delivered": delivered})

@bp.post("/rooms/<int:room_id>/close")
def close(room_id: int):
    return ok(svc.close(current_user, room_id).to_dict(), message="Chat room closed")
