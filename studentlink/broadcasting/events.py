from typing import List

from .channels import Channel, PrivateChannel
from ..utils.helpers import isoformat, utcnow


class BroadcastEvent:
    """
    Base class for real-time notifications.

    Subclasses pick the recipient channels (`broadcast_on`), the wire event
    name (`broadcast_as`, defaults to the class name) and the payload
    (`broadcast_with`).
    """

    def broadcast_on(self) -> List[Channel]:
        raise NotImplementedError

    def broadcast_as(self) -> str:
        return type(self).__name__

    def broadcast_with(self) -> dict:
        raise NotImplementedError


def _user_summary(user) -> dict:
    return {"id": user.id, "name": user.name, "role": user.role}


def _participant_channels(chat_room, exclude_user_id) -> List[Channel]:
    # Never address the acting user
    return [
        PrivateChannel(f"chat.room.{chat_room.id}.user.{participant_id}")
        for participant_id in chat_room.participant_ids()
        if participant_id != exclude_user_id
    ]


class ChatMessageSent(BroadcastEvent):
    def __init__(self, chat_room, message):
        self.chat_room = chat_room
        self.message = message

    def broadcast_on(self) -> List[Channel]:
        return [PrivateChannel(f"private-chat.room.{self.chat_room.id}")]

    def broadcast_as(self) -> str:
        return "message.sent"

    def broadcast_with(self) -> dict:
        return {
            "type": "new_message",
            "chat_room_id": self.chat_room.id,
            "message": self.message.to_dict(),
        }


class ConcernUpdated(BroadcastEvent):
    def __init__(self, concern, action: str = "updated"):
        self.concern = concern
        self.action = action

    def broadcast_on(self) -> List[Channel]:
        return [
            Channel("concerns"),
            PrivateChannel(f"concerns.department.{self.concern.department_id}"),
        ]

    def broadcast_with(self) -> dict:
        c = self.concern
        return {
            "concern": {
                "id": c.id,
                "reference_number": c.reference_number,
                "subject": c.subject,
                "status": c.status,
                "priority": c.priority,
                "department_id": c.department_id,
                "updated_at": isoformat(c.updated_at),
            },
            "action": self.action,
            "timestamp": isoformat(utcnow()),
        }


class MessageSent(BroadcastEvent):
    def __init__(self, message, chat_room):
        self.message = message
        self.chat_room = chat_room

    def broadcast_on(self) -> List[Channel]:
        return _participant_channels(self.chat_room, self.message.author_id)

    def broadcast_as(self) -> str:
        return "message.sent"

    def broadcast_with(self) -> dict:
        m = self.message
        reply_to = None
        if m.reply_to is not None:
            reply_to = {
                "id": m.reply_to.id,
                "message": m.reply_to.message,
                "author": {"name": m.reply_to.author.name if m.reply_to.author else None},
            }
        return {
            "type": "new_message",
            "message": {
                "id": m.id,
                "message": m.message,
                "message_type": m.message_type,
                "created_at": isoformat(m.created_at),
                "author": _user_summary(m.author),
                "reply_to": reply_to,
            },
            "chat_room": {
                "id": self.chat_room.id,
                "last_activity_at": isoformat(self.chat_room.last_activity_at),
            },
        }


class TypingStatus(BroadcastEvent):
    def __init__(self, chat_room, user, is_typing: bool):
        self.chat_room = chat_room
        self.user = user
        self.is_typing = bool(is_typing)

    def broadcast_on(self) -> List[Channel]:
        return _participant_channels(self.chat_room, self.user.id)

    def broadcast_as(self) -> str:
        return "typing.status"

    def broadcast_with(self) -> dict:
        return {
            "type": "typing_status",
            "user": _user_summary(self.user),
            "is_typing": self.is_typing,
        }
