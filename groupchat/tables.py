"""Database models for users and chat messages."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, Text

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    username = Column(String, unique=True, index=True, nullable=False)
    profile_pic = Column(LargeBinary, nullable=False, default=b"")
    profile_pic_type = Column(String, nullable=False, default="image/png")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class MessageRow(Base):
    __tablename__ = "messages"
    # never reuse a sequence id, even after the newest row is deleted
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(32), index=True, nullable=False)
    username = Column(String, nullable=False)
    profile_pic_url = Column(Text, nullable=False)
    text = Column(Text, nullable=False, default="")
    media_kind = Column(String, nullable=True)
    media_mime_type = Column(String, nullable=True)
    media_data = Column(Text, nullable=True)
    media_size = Column(Integer, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
