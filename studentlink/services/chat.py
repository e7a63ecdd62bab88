from typing import List

from studentlink.extensions import broadcaster, db
from studentlink.broadcasting import ChatMessageSent, MessageSent, TypingStatus
from studentlink.models import ChatRoom, ConcernMessage, User
from studentlink.models.user import ROLE_ADMIN, ROLE_STUDENT
from studentlink.models.chat_room import STATUS_ACTIVE
from studentlink.observability import log_event
from studentlink.utils.helpers import safe_int
from studentlink.utils.validators import Errors, require_str
from . import concerns as concern_service
from .errors import Forbidden, NotFound, ServiceError, ValidationFailed

MESSAGE_MAX = 2000
MESSAGE_TYPES = ("text", "attachment")
PAGE_SIZE = 50

def rooms_for(user: User) -> List[ChatRoom]:
    rooms = ChatRoom.query.filter_by(status=STATUS_ACTIVE).order_by(ChatRoom.last_activity_at.desc()).all()
    return [room for room in rooms if room.has_participant(user.id)]

def _room_or_404(room_id: int) -> ChatRoom:
    room = db.session.get(ChatRoom, room_id)
    if room is None:
        raise NotFound("Chat room not found")
    return room

def _member_room(user: User, room_id: int, allow_admin: bool = True) -> ChatRoom:
    room = _room_or_404(room_id)
    if room.has_participant(user.id):
        return room
    if allow_admin and user.role == ROLE_ADMIN:
        return room
    raise Forbidden("You are not a participant in this chat room")

def get_or_create(user: User, concern_id: int) -> ChatRoom:
    concern = concern_service.get_visible(user, concern_id)
    room = concern.chat_room
    if room is None:
        room = concern_service.open_chat_room(concern)
    if not room.has_participant(user.id):
        room.add_participant(user.id, user.role)
    db.session.commit()
    return room

def post_message(user: User, room_id: int, data: dict) -> ConcernMessage:
    room = _member_room(user, room_id, allow_admin=False)
    if not room.is_active:
        raise ServiceError("Chat room is closed")

    errors: Errors = {}
    text = require_str(data, "message", errors, max_len=MESSAGE_MAX)
    message_type = data.get("message_type") or "text"
    if message_type not in MESSAGE_TYPES:
        errors.setdefault("message_type", []).append("The selected message_type is invalid.")
    reply_to_id = safe_int(data.get("reply_to_id"))
    if data.get("reply_to_id") is not None:
        parent = db.session.get(ConcernMessage, reply_to_id) if reply_to_id else None
        if parent is None or parent.chat_room_id != room.id:
            errors.setdefault("reply_to_id", []).append("The selected reply_to_id is invalid.")
    if errors:
        raise ValidationFailed(errors)

    message = ConcernMessage(
        concern_id=room.concern_id,
        chat_room_id=room.id,
        author_id=user.id,
        message=text,
        message_type=message_type,
        reply_to_id=reply_to_id,
        # students never write staff-only notes
        is_internal=bool(data.get("is_internal")) and user.role != ROLE_STUDENT,
    )
    db.session.add(message)
    room.touch()
    db.session.commit()

    log_event("chat.message", room_id=room.id, message_id=message.id, author_id=user.id)
    if not message.is_internal:
        broadcaster.broadcast(MessageSent(message, room))
        broadcaster.broadcast(ChatMessageSent(room, message))
    return message

def list_messages(user: User, room_id: int, page: int = 1) -> dict:
    room = _member_room(user, room_id)
    q = ConcernMessage.query.filter_by(chat_room_id=room.id)
    if user.role == ROLE_STUDENT:
        q = q.filter(ConcernMessage.is_internal.is_(False))
    total = q.count()
    page = max(page, 1)
    rows = (
        q.order_by(ConcernMessage.created_at.asc(), ConcernMessage.id.asc())
        .offset((page - 1) * PAGE_SIZE)
        .limit(PAGE_SIZE)
        .all()
    )
    return {
        "chat_room": room.to_dict(),
        "messages": [m.to_dict() for m in rows],
        "page": page,
        "per_page": PAGE_SIZE,
        "total": total,
    }

def typing(user: User, room_id: int, is_typing) -> int:
    room = _member_room(user, room_id, allow_admin=False)
    if not isinstance(is_typing, bool):
        raise ValidationFailed({"is_typing": ["The is_typing field must be true or false."]})
    return broadcaster.broadcast(TypingStatus(room, user, is_typing))

def close(user: User, room_id: int) -> ChatRoom:
    if user.role == ROLE_STUDENT:
        raise Forbidden("Students cannot close chat rooms")
    room = _member_room(user, room_id)
    room.close(user.id)
    db.session.commit()
    log_event("chat.closed", room_id=room.id, user_id=user.id)
    return room
