from __future__ import annotations

import threading

from .errors import AlreadyBoundError


class PresenceRegistry:
    """Single owner of live connections and the online set derived from them.

    The online set is never stored on its own; it is computed from the
    connection bindings, so a disconnect cannot leave a stale entry behind.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, connection_id: str, user_id: str) -> list[str]:
        with self._lock:
            if connection_id in self._bindings:
                raise AlreadyBoundError(f"Connection {connection_id} is already bound to a user.")
            self._bindings[connection_id] = user_id
            return self._online()

    def unregister(self, connection_id: str) -> list[str] | None:
        with self._lock:
            user_id = self._bindings.pop(connection_id, None)
            if user_id is None:
                return None
            if user_id in self._bindings.values():
                return None
            return self._online()

    def is_online(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._bindings.values()

    def bound_user(self, connection_id: str) -> str | None:
        with self._lock:
            return self._bindings.get(connection_id)

    def online_users(self) -> list[str]:
        with self._lock:
            return self._online()

    def online_count(self) -> int:
        with self._lock:
            return len(set(self._bindings.values()))

    def _online(self) -> list[str]:
        return sorted(set(self._bindings.values()))
