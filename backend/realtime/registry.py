"""Ephemeral per-process map of live connections keyed by user.

Nothing durable depends on it: presence is best effort.
"""

from __future__ import annotations

import threading
from collections import defaultdict


class ConnectionRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._by_user: dict[int, set[str]] = defaultdict(set)
        self._owner: dict[str, int] = {}
        self._rooms: dict[str, set[str]] = defaultdict(set)

    def add(self, user_id: int, connection_id: str) -> bool:
        """Register a connection. Returns True if the user just came online."""

        with self._lock:
            previous = self._owner.get(connection_id)
            if previous is not None and previous != user_id:
                self._detach(connection_id)
            first = not self._by_user.get(user_id)
            self._by_user[user_id].add(connection_id)
            self._owner[connection_id] = user_id
            return first

    def remove(self, connection_id: str) -> tuple[int | None, bool]:
        """Drop a connection. Returns (user_id, went_offline)."""

        with self._lock:
            user_id = self._owner.get(connection_id)
            if user_id is None:
                return None, False
            self._detach(connection_id)
            return user_id, not self._by_user.get(user_id)

    def _detach(self, connection_id: str) -> None:
        user_id = self._owner.pop(connection_id, None)
        if user_id is not None:
            conns = self._by_user.get(user_id)
            if conns is not None:
                conns.discard(connection_id)
                if not conns:
                    del self._by_user[user_id]
        for members in self._rooms.values():
            members.discard(connection_id)

    def lookup(self, user_id: int) -> set[str]:
        with self._lock:
            return set(self._by_user.get(user_id, ()))

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._by_user.get(user_id))

    def online_user_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._by_user)

    def all_connections(self) -> set[str]:
        with self._lock:
            return set(self._owner)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._owner)

    def join(self, connection_id: str, room: str) -> None:
        with self._lock:
            if connection_id in self._owner:
                self._rooms[room].add(connection_id)

    def leave(self, connection_id: str, room: str) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(connection_id)
                if not members:
                    del self._rooms[room]

    def room_members(self, room: str) -> set[str]:
        with self._lock:
            return set(self._rooms.get(room, ()))

    def clear(self) -> None:
        with self._lock:
            self._by_user.clear()
            self._owner.clear()
            self._rooms.clear()
