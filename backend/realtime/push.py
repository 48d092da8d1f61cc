"""Realtime push channel.

Domain code only talks to ``publish_safely``; delivery is at most once and
never allowed to fail the operation that triggered it.
"""

from __future__ import annotations

import logging
from typing import Callable

from django.conf import settings
from django.utils.module_loading import import_string

from .registry import ConnectionRegistry

logger = logging.getLogger("souqify.realtime")

Transport = Callable[[str, str, dict], None]

USER_ONLINE = "userOnline"
USER_OFFLINE = "userOffline"
USER_TYPING = "userTyping"
NEW_MESSAGE = "newMessage"


def conversation_room(conversation_id: int) -> str:
    return f"conversation:{conversation_id}"


def _log_transport(connection_id: str, event: str, payload: dict) -> None:
    logger.debug("push %s to %s", event, connection_id, extra={"event": event})


class PushChannel:
    def __init__(self, registry: ConnectionRegistry | None = None):
        self.registry = registry or ConnectionRegistry()

    def deliver(self, connection_id: str, event: str, payload: dict) -> None:
        raise NotImplementedError

    def emit(self, event: str, payload: dict, *, user_id: int | None = None, room: str | None = None) -> int:
        if user_id is not None:
            targets = self.registry.lookup(user_id)
        elif room is not None:
            targets = self.registry.room_members(room)
        else:
            targets = self.registry.all_connections()

        for connection_id in sorted(targets):
            self.deliver(connection_id, event, payload)
        return len(targets)

    def connect(self, user_id: int, connection_id: str) -> None:
        if self.registry.add(user_id, connection_id):
            self.emit(USER_ONLINE, {"user_id": user_id})

    def disconnect(self, connection_id: str) -> None:
        user_id, went_offline = self.registry.remove(connection_id)
        if went_offline:
            self.emit(USER_OFFLINE, {"user_id": user_id})

    def join(self, connection_id: str, room: str) -> None:
        self.registry.join(connection_id, room)

    def leave(self, connection_id: str, room: str) -> None:
        self.registry.leave(connection_id, room)

    def typing(self, sender_id: int, receiver_id: int) -> int:
        return self.emit(USER_TYPING, {"user_id": sender_id}, user_id=receiver_id)


class LocalPushChannel(PushChannel):
    """In-process channel; the transport does the actual socket write."""

    def __init__(self, registry: ConnectionRegistry | None = None, transport: Transport | None = None):
        super().__init__(registry)
        self.transport = transport or _log_transport

    def deliver(self, connection_id: str, event: str, payload: dict) -> None:
        self.transport(connection_id, event, payload)


_channel: PushChannel | None = None


def get_push_channel() -> PushChannel:
    global _channel
    if _channel is None:
        _channel = import_string(settings.REALTIME_CHANNEL_BACKEND)()
    return _channel


def set_push_channel(channel: PushChannel | None) -> None:
    global _channel
    _channel = channel


def publish_safely(event: str, payload: dict, *, user_id: int | None = None, room: str | None = None) -> int:
    try:
        return get_push_channel().emit(event, payload, user_id=user_id, room=room)
    except Exception:
        logger.exception("realtime push failed", extra={"event": event, "user_id": user_id})
        return 0
