"""Error taxonomy shared by the chat components.

Every error carries a stable ``code`` that is sent to the originating
connection in an ``error`` event. None of them is fatal to the process.
"""
from __future__ import annotations


class ChatError(Exception):
    code = "chat_error"


class AlreadyBoundError(ChatError):
    code = "already_bound"


class UnauthenticatedError(ChatError):
    code = "unauthenticated"


class EmptyMessageError(ChatError):
    code = "empty_message"


class InvalidAttachmentError(ChatError):
    code = "invalid_attachment"


class PayloadTooLargeError(InvalidAttachmentError):
    code = "payload_too_large"


class UnsupportedMediaTypeError(InvalidAttachmentError):
    code = "unsupported_media_type"


class PersistenceError(ChatError):
    code = "persistence_error"


class DuplicateUsernameError(ChatError):
    code = "duplicate_username"
