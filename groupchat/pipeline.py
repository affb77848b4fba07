from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from fastapi.concurrency import run_in_threadpool

from . import media
from .accounts import AccountStore
from .errors import EmptyMessageError, PersistenceError, UnauthenticatedError
from .logging_config import configure_logging
from .models import ChatMessage, FanOut
from .presence import PresenceRegistry
from .store import MessageStore

logger = configure_logging()

Publish = Callable[[dict[str, Any], FanOut], Awaitable[None]]


class MessagePipeline:
    """Validates, persists and fans out chat messages.

    A message becomes visible to anyone, the sender included, only after the
    store has written it. The store's sequence id is the order key.
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        accounts: AccountStore,
        store: MessageStore,
        publish: Publish,
    ) -> None:
        self._registry = registry
        self._accounts = accounts
        self._store = store
        self._publish = publish

    async def submit(
        self,
        author_id: str,
        text: str | None,
        attachment: dict[str, Any] | None = None,
    ) -> ChatMessage:
        if not author_id or not self._registry.is_online(author_id):
            raise UnauthenticatedError("Join the chat before sending messages.")
        author = await run_in_threadpool(self._accounts.get_user, author_id)
        if author is None:
            raise UnauthenticatedError("Unknown user.")

        body = text if isinstance(text, str) else ""
        if not body.strip() and not attachment:
            raise EmptyMessageError("Message needs text or an attachment.")

        media_item = media.parse_inbound(attachment) if attachment else None

        loop = asyncio.get_running_loop()
        fanout: asyncio.Future = loop.create_future()

        def schedule_fanout(message: ChatMessage) -> None:
            # called under the store write lock, so fan-outs are queued in commit order
            loop.call_soon_threadsafe(self._start_fanout, message, fanout)

        try:
            message = await run_in_threadpool(self._store.append, author, body, media_item, schedule_fanout)
        except PersistenceError:
            logger.error("PERSISTENCE_FAIL user_id=%s", author_id, exc_info=True)
            raise

        logger.info(
            "MESSAGE_PERSISTED message_id=%s user_id=%s media=%s",
            message.id,
            author_id,
            media_item.kind if media_item else None,
        )
        await (await fanout)
        return message

    def _start_fanout(self, message: ChatMessage, fanout: asyncio.Future) -> None:
        payload = {"type": "message", "message": message.to_dict()}
        fanout.set_result(asyncio.ensure_future(self._publish(payload, FanOut.ALL)))

    async def list_all(self, after_id: int = 0) -> list[ChatMessage]:
        return await run_in_threadpool(self._store.list_all, after_id)
