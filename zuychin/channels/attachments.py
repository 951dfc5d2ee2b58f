"""Inbound validation: message text and file attachments.

Everything here runs before the pipeline; a violation raises
``InboundValidationError`` carrying the user-facing reason.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from zuychin.config import settings

SUPPORTED_MIME_TYPES: dict[str, list[str]] = {
    "images": ["image/jpeg", "image/png", "image/gif", "image/webp"],
    "documents": ["application/pdf"],
    "text": [
        "text/plain",
        "text/csv",
        "text/html",
        "text/markdown",
        "application/json",
        "application/xml",
    ],
}

ALL_SUPPORTED_MIME_TYPES: frozenset[str] = frozenset(
    mime for group in SUPPORTED_MIME_TYPES.values() for mime in group
)


class InboundValidationError(Exception):
    """Raised when an inbound message is rejected before processing."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass
class Attachment:
    """A binary file sent along with a message."""

    name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def _format_mb(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):g} MB"


def validate_message(message: object) -> str:
    """Return the trimmed message text or raise with the reason."""
    if not message or not isinstance(message, str) or not message.strip():
        raise InboundValidationError("Message is required.")
    if len(message) > settings.max_message_length:
        raise InboundValidationError(
            f"Message is too long (max {settings.max_message_length:,} characters)."
        )
    return message.strip()


def validate_attachment(attachment: Attachment, declared_size: int | None = None) -> Attachment:
    """Check MIME type and size. Returns the attachment unchanged."""
    if attachment.mime_type not in ALL_SUPPORTED_MIME_TYPES:
        raise InboundValidationError(f"Unsupported file type: {attachment.mime_type}")
    size = max(attachment.size, declared_size or 0)
    if size > settings.max_upload_bytes:
        raise InboundValidationError(
            f"File too large. Max {_format_mb(settings.max_upload_bytes)}."
        )
    return attachment


def decode_attachment(
    name: str, mime_type: str, data_b64: str, declared_size: int | None = None
) -> Attachment:
    """Build and validate an attachment from a base64 payload."""
    if declared_size and declared_size > settings.max_upload_bytes:
        raise InboundValidationError(
            f"File too large. Max {_format_mb(settings.max_upload_bytes)}."
        )
    if mime_type not in ALL_SUPPORTED_MIME_TYPES:
        raise InboundValidationError(f"Unsupported file type: {mime_type}")
    try:
        data = base64.b64decode(data_b64, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise InboundValidationError("Attachment is not valid base64.") from exc
    return validate_attachment(Attachment(name=name, mime_type=mime_type, data=data), declared_size)
