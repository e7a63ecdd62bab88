from .channels import Channel, PrivateChannel
from .events import BroadcastEvent, ChatMessageSent, ConcernUpdated, MessageSent, TypingStatus
from .broadcaster import Broadcaster, MemoryBackend, RedisBackend

__all__ = [
    "Channel",
    "PrivateChannel",
    "BroadcastEvent",
    "ChatMessageSent",
    "ConcernUpdated",
    "MessageSent",
    "TypingStatus",
    "Broadcaster",
    "MemoryBackend",
    "RedisBackend",
]
