from __future__ import annotations

import asyncio
import uuid
from typing import Any

from fastapi import WebSocket
from fastapi.concurrency import run_in_threadpool

from .accounts import AccountStore
from .errors import ChatError, PersistenceError, UnauthenticatedError
from .logging_config import configure_logging
from .models import FanOut
from .pipeline import MessagePipeline
from .presence import PresenceRegistry
from .store import MessageStore
from .typing_signal import TypingDebouncer

logger = configure_logging()


class ChatGateway:
    """Boundary between WebSocket connections and the chat components.

    Every inbound event goes to exactly one component, and the component's
    result is delivered with the fan-out scope of its event kind.
    """

    def __init__(
        self,
        accounts: AccountStore,
        store: MessageStore,
        registry: PresenceRegistry | None = None,
        typing: TypingDebouncer | None = None,
    ) -> None:
        self._sockets: dict[str, WebSocket] = {}
        self._usernames: dict[str, str] = {}
        self._lock = asyncio.Lock()
        # held for a whole fan-out so every client sees broadcasts in publish order
        self._fanout_lock = asyncio.Lock()
        self.accounts = accounts
        self.registry = registry or PresenceRegistry()
        self.typing = typing or TypingDebouncer()
        self.pipeline = MessagePipeline(self.registry, accounts, store, self.publish)

    async def connect(self, websocket: WebSocket) -> str:
        connection_id = uuid.uuid4().hex
        async with self._lock:
            self._sockets[connection_id] = websocket
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            self._sockets.pop(connection_id, None)

        user_id = self.registry.bound_user(connection_id)
        users = self.registry.unregister(connection_id)
        if users is None:
            return
        self.typing.forget(user_id)
        self._usernames.pop(user_id, None)
        logger.info("USER_LEAVE user_id=%s online=%s", user_id, len(users))
        await self.publish({"type": "presence", "users": users}, FanOut.ALL)

    async def handle(self, connection_id: str, payload: Any) -> None:
        """Route one inbound event; failures are reported to this connection only."""
        try:
            await self._route(connection_id, payload)
        except ChatError as exc:
            if isinstance(exc, PersistenceError):
                logger.error("EVENT_FAILED connection=%s code=%s reason=%s", connection_id, exc.code, exc)
            else:
                logger.info("EVENT_REJECTED connection=%s code=%s reason=%s", connection_id, exc.code, exc)
            await self.send_error(connection_id, exc.code, str(exc))

    async def send_error(self, connection_id: str, code: str, message: str) -> None:
        await self.publish({"type": "error", "code": code, "message": message}, FanOut.ORIGIN, connection_id)

    async def publish(self, payload: dict[str, Any], scope: FanOut, origin: str | None = None) -> None:
        async with self._fanout_lock:
            async with self._lock:
                targets = self._collect_sockets(scope, origin)
            await self._send_many(targets, payload)

    async def _route(self, connection_id: str, payload: Any) -> None:
        if not isinstance(payload, dict):
            await self.send_error(connection_id, "bad_request", "Events must be JSON objects.")
            return
        event_type = str(payload.get("type") or "").strip()

        if event_type == "join":
            await self._join(connection_id, payload.get("user_id"))
            return

        if event_type == "send":
            user_id = self._require_user(connection_id)
            await self.pipeline.submit(user_id, payload.get("text"), payload.get("attachment"))
            return

        if event_type == "typing":
            user_id = self._require_user(connection_id)
            signal = self.typing.notify_typing(user_id, self._usernames.get(user_id, ""))
            if signal is not None:
                await self.publish({"type": "typing", **signal.to_dict()}, FanOut.OTHERS, connection_id)
            return

        if event_type == "ping":
            await self.publish({"type": "pong"}, FanOut.ORIGIN, connection_id)
            return

        await self.send_error(connection_id, "unknown_event", f"Unknown event type: {event_type or '<missing>'}")

    async def _join(self, connection_id: str, user_id: Any) -> None:
        if not isinstance(user_id, str) or not user_id:
            raise UnauthenticatedError("join needs a user_id.")
        profile = await run_in_threadpool(self.accounts.get_user, user_id)
        if profile is None:
            raise UnauthenticatedError("Unknown user.")

        users = self.registry.register(connection_id, user_id)
        self._usernames[user_id] = profile.username
        logger.info("USER_JOIN user_id=%s username=%s online=%s", user_id, profile.username, len(users))
        await self.publish({"type": "presence", "users": users}, FanOut.ALL)

    def _require_user(self, connection_id: str) -> str:
        user_id = self.registry.bound_user(connection_id)
        if user_id is None:
            raise UnauthenticatedError("Join the chat first.")
        return user_id

    def _collect_sockets(self, scope: FanOut, origin: str | None) -> list[WebSocket]:
        if scope is FanOut.ORIGIN:
            socket = self._sockets.get(origin) if origin else None
            return [socket] if socket else []
        if scope is FanOut.ALL:
            return list(self._sockets.values())
        return [socket for connection_id, socket in self._sockets.items() if connection_id != origin]

    async def _send_many(self, sockets: list[WebSocket], payload: dict[str, Any]) -> None:
        for ws in sockets:
            try:
                await ws.send_json(payload)
            except Exception as exc:
                # A dead websocket is removed when its receive loop sees the disconnect.
                logger.debug("SEND_FAIL type=%s error=%s", payload.get("type"), exc)
                continue
