from __future__ import annotations

import base64
import binascii
import re
from typing import Any

from .config import MAX_MEDIA_BYTES
from .errors import InvalidAttachmentError, PayloadTooLargeError, UnsupportedMediaTypeError
from .models import Attachment


ALLOWED_MIME_TYPES: dict[str, frozenset[str]] = {
    "image": frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}),
    "audio": frozenset({"audio/webm", "audio/ogg", "audio/mpeg", "audio/mp4", "audio/aac", "audio/wav"}),
}

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]+)(?:;[^,]*)?;base64,(?P<data>.*)$", re.DOTALL)


def normalize_mime(mime_type: str | None) -> str:
    # "audio/webm;codecs=opus" -> "audio/webm"
    return (mime_type or "").split(";", maxsplit=1)[0].strip().lower()


def encode(raw: bytes, mime_type: str, kind: str, max_bytes: int = MAX_MEDIA_BYTES) -> Attachment:
    """Validate a raw payload and wrap it as a base64 Attachment.

    The payload is never inspected or re-encoded beyond base64, so
    ``decode(encode(raw, ...)) == raw`` for every accepted input.
    """
    if len(raw) > max_bytes:
        raise PayloadTooLargeError(f"Attachment is {len(raw)} bytes, limit is {max_bytes}.")

    allowed = ALLOWED_MIME_TYPES.get(kind)
    if allowed is None:
        raise UnsupportedMediaTypeError(f"Unsupported attachment kind: {kind!r}.")
    normalized = normalize_mime(mime_type)
    if normalized not in allowed:
        raise UnsupportedMediaTypeError(f"{mime_type!r} is not an allowed {kind} type.")

    return Attachment(
        kind=kind,
        mime_type=normalized,
        data=base64.b64encode(raw).decode("ascii"),
        size=len(raw),
    )


def decode(attachment: Attachment) -> bytes:
    return base64.b64decode(attachment.data)


def data_url(mime_type: str, raw: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(raw).decode('ascii')}"


def parse_inbound(payload: Any, max_bytes: int = MAX_MEDIA_BYTES) -> Attachment:
    """Turn a client attachment object ``{kind, mime_type, data}`` into an Attachment.

    ``data`` may be plain base64 or a ``data:`` URL; a MIME type embedded in
    the URL is used when ``mime_type`` is absent.
    """
    if not isinstance(payload, dict):
        raise InvalidAttachmentError("Attachment must be an object.")

    kind = payload.get("kind") or payload.get("type")
    mime_type = payload.get("mime_type") or payload.get("mimeType")
    data = payload.get("data")
    if not isinstance(kind, str) or not isinstance(data, str) or not data:
        raise InvalidAttachmentError("Attachment needs a kind and base64 data.")

    match = _DATA_URL_RE.match(data)
    if match:
        mime_type = mime_type or match.group("mime")
        data = match.group("data")
    if not isinstance(mime_type, str) or not mime_type:
        raise InvalidAttachmentError("Attachment is missing its MIME type.")

    # base64 inflates by 4/3; reject obviously oversized input before decoding it
    if len(data) > (max_bytes // 3 + 1) * 4 + 4:
        raise PayloadTooLargeError(f"Attachment exceeds the {max_bytes} byte limit.")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidAttachmentError("Attachment data is not valid base64.") from exc

    return encode(raw, mime_type, kind, max_bytes=max_bytes)
