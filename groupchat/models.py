from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FanOut(Enum):
    ALL = "all"
    OTHERS = "others"
    ORIGIN = "origin"


@dataclass(slots=True, frozen=True)
class UserProfile:
    id: str
    username: str
    profile_pic_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "profile_pic_url": self.profile_pic_url,
        }


@dataclass(slots=True, frozen=True)
class Attachment:
    kind: str
    mime_type: str
    data: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "mime_type": self.mime_type,
            "data": self.data,
            "size": self.size,
        }


@dataclass(slots=True, frozen=True)
class ChatMessage:
    id: int
    user_id: str
    username: str
    profile_pic_url: str
    text: str
    timestamp: datetime
    media: Attachment | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "profile_pic_url": self.profile_pic_url,
            "text": self.text,
            "media": self.media.to_dict() if self.media else None,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class TypingSignal:
    user_id: str
    username: str
    expires_in: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "expires_in": self.expires_in,
        }
