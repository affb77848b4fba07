from __future__ import annotations

import time
from typing import Callable

from .config import TYPING_EXPIRY_SECONDS, TYPING_MIN_INTERVAL_SECONDS
from .models import TypingSignal


class TypingDebouncer:
    """Turns typing notifications into short-lived broadcast signals.

    Expiry belongs to the clients: each signal tells them how long to keep
    the indicator. The timestamps kept here only throttle repeated signals
    and are not exposed as "who is typing" state.
    """

    def __init__(
        self,
        expires_in: float = TYPING_EXPIRY_SECONDS,
        min_interval: float = TYPING_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._expires_in = expires_in
        self._min_interval = min_interval
        self._clock = clock
        self._last_typing: dict[str, float] = {}

    def notify_typing(self, user_id: str, username: str) -> TypingSignal | None:
        now = self._clock()
        last = self._last_typing.get(user_id)
        if last is not None and now - last < self._min_interval:
            return None
        self._last_typing[user_id] = now
        return TypingSignal(user_id=user_id, username=username, expires_in=self._expires_in)

    def forget(self, user_id: str) -> None:
        self._last_typing.pop(user_id, None)
