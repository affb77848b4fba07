"""Account lookup and profile creation."""
from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from . import media
from .config import DEFAULT_AVATAR_PATH
from .errors import DuplicateUsernameError, PersistenceError
from .logging_config import configure_logging
from .models import UserProfile
from .tables import UserRow

logger = configure_logging()


def _to_profile(row: UserRow) -> UserProfile:
    return UserProfile(
        id=row.id,
        username=row.username,
        profile_pic_url=media.data_url(row.profile_pic_type, row.profile_pic or b""),
    )


class AccountStore:
    def __init__(self, session_factory: sessionmaker, default_avatar: Path = DEFAULT_AVATAR_PATH) -> None:
        self._session_factory = session_factory
        self._default_avatar = default_avatar

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        session = self._session_factory()
        try:
            row = session.get(UserRow, user_id)
            return _to_profile(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read user: {exc.__class__.__name__}") from exc
        finally:
            session.close()

    def find_or_create_user(
        self,
        username: str,
        avatar: Optional[bytes] = None,
        avatar_mime: Optional[str] = None,
    ) -> UserProfile:
        """Return the user called ``username``, creating it on first use.

        An existing username is a lookup, not an error. The avatar is only
        validated and stored when the user is created.
        """
        if not username:
            raise ValueError("Username is required")

        session = self._session_factory()
        try:
            row = session.query(UserRow).filter(UserRow.username == username).first()
            if row:
                logger.info("USER_FOUND username=%s user_id=%s", username, row.id)
                return _to_profile(row)

            if avatar:
                picture = media.encode(avatar, avatar_mime or "", "image")
                pic_bytes, pic_type = media.decode(picture), picture.mime_type
            else:
                pic_bytes, pic_type = self._read_default_avatar(), "image/png"

            row = UserRow(id=uuid.uuid4().hex, username=username, profile_pic=pic_bytes, profile_pic_type=pic_type)
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                # lost a create race: the winner's row is the identity for this name
                session.rollback()
                existing = session.query(UserRow).filter(UserRow.username == username).first()
                if existing is None:
                    raise DuplicateUsernameError(f"Username {username!r} is taken")
                return _to_profile(existing)

            logger.info("USER_CREATED username=%s user_id=%s", username, row.id)
            return _to_profile(row)
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Could not store user: {exc.__class__.__name__}") from exc
        finally:
            session.close()

    def _read_default_avatar(self) -> bytes:
        try:
            return self._default_avatar.read_bytes()
        except OSError as exc:
            logger.warning("DEFAULT_AVATAR_MISSING path=%s error=%s", self._default_avatar, exc)
            return b""
