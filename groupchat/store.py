"""Append-only message persistence with server-assigned ordering."""
from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import PersistenceError
from .models import Attachment, ChatMessage, UserProfile, utc_now
from .tables import MessageRow


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_message(row: MessageRow) -> ChatMessage:
    media = None
    if row.media_kind:
        media = Attachment(
            kind=row.media_kind,
            mime_type=row.media_mime_type,
            data=row.media_data,
            size=row.media_size,
        )
    return ChatMessage(
        id=row.id,
        user_id=row.user_id,
        username=row.username,
        profile_pic_url=row.profile_pic_url,
        text=row.text,
        timestamp=_as_utc(row.timestamp),
        media=media,
    )


class MessageStore:
    """Durable message log.

    The sequence id comes from the table's autoincrement key and the
    timestamp is taken under the same write lock, so both follow the order
    in which writes complete. Timestamps never go backwards even if the wall
    clock does.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._write_lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None

    def append(
        self,
        author: UserProfile,
        text: str,
        media: Optional[Attachment] = None,
        on_commit: Optional[Callable[[ChatMessage], None]] = None,
    ) -> ChatMessage:
        """Store a message; ``on_commit`` runs before the write lock is released."""
        with self._write_lock:
            session = self._session_factory()
            try:
                row = MessageRow(
                    user_id=author.id,
                    username=author.username,
                    profile_pic_url=author.profile_pic_url,
                    text=text,
                    media_kind=media.kind if media else None,
                    media_mime_type=media.mime_type if media else None,
                    media_data=media.data if media else None,
                    media_size=media.size if media else None,
                    timestamp=self._next_timestamp(session),
                )
                session.add(row)
                session.commit()
                self._last_timestamp = _as_utc(row.timestamp)
                message = _to_message(row)
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceError(f"Could not store message: {exc.__class__.__name__}") from exc
            finally:
                session.close()
            if on_commit is not None:
                on_commit(message)
            return message

    def list_all(self, after_id: int = 0) -> List[ChatMessage]:
        session = self._session_factory()
        try:
            rows = (
                session.query(MessageRow)
                .filter(MessageRow.id > after_id)
                .order_by(MessageRow.id)
                .all()
            )
            return [_to_message(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read messages: {exc.__class__.__name__}") from exc
        finally:
            session.close()

    def _next_timestamp(self, session) -> datetime:
        if self._last_timestamp is None:
            latest = session.query(func.max(MessageRow.timestamp)).scalar()
            if latest is not None:
                self._last_timestamp = _as_utc(latest)
        now = utc_now()
        if self._last_timestamp is not None and now < self._last_timestamp:
            return self._last_timestamp
        return now
