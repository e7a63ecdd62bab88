import json
import logging
from collections import deque
from typing import List, Optional

import redis
from flask import current_app

from ..observability import log_event

MEMORY_BACKLOG = 1000


class MemoryBackend:
    """Keeps the most recent published envelopes in-process (dev/testing)."""

    def __init__(self, maxlen: int = MEMORY_BACKLOG):
        self.published = deque(maxlen=maxlen)

    def publish(self, channel: str, envelope: dict) -> None:
        self.published.append(dict(envelope))

    def clear(self) -> None:
        self.published.clear()


class RedisBackend:
    """Publishes JSON envelopes to Redis pub/sub; the socket gateway fans them out."""

    def __init__(self, url: str):
        self.url = url
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(self.url, encoding="utf-8", decode_responses=True)
        return self._client

    def publish(self, channel: str, envelope: dict) -> None:
        self.client.publish(channel, json.dumps(envelope, default=str))


def _make_backend(url: str):
    if not url or url.startswith("memory://"):
        return MemoryBackend()
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisBackend(url)
    raise RuntimeError(f"Unsupported BROADCAST_URL scheme: {url}")


class Broadcaster:
    """
    Flask extension that fans a BroadcastEvent out to each of its channels.

    Publishing is fire-and-forget: a bus failure is logged and the request
    carries on.
    """

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        backend = _make_backend(app.config.get("BROADCAST_URL", "memory://"))
        app.extensions["broadcaster"] = {
            "backend": backend,
            "prefix": app.config.get("BROADCAST_PREFIX", ""),
        }

    @property
    def _state(self) -> dict:
        return current_app.extensions["broadcaster"]

    @property
    def backend(self):
        return self._state["backend"]

    @property
    def published(self) -> List[dict]:
        """Envelopes seen by the memory backend; empty for the Redis backend."""
        return list(getattr(self.backend, "published", ()))

    def broadcast(self, event) -> int:
        name = event.broadcast_as()
        data = event.broadcast_with()
        prefix = self._state["prefix"]
        delivered = 0
        channels = [f"{prefix}{channel.name}" for channel in event.broadcast_on()]
        for channel in channels:
            try:
                self.backend.publish(channel, {"event": name, "channel": channel, "data": data})
                delivered += 1
            except redis.RedisError as exc:
                log_event("broadcast.failed", logging.WARNING, name=name, channel=channel, error=str(exc))
        log_event("broadcast.sent", name=name, channels=channels, delivered=delivered)
        return delivered
