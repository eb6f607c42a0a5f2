from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass

from common.config import MediaSettings
from common.errors import InvalidInput, MalformedEncoding, PayloadTooLarge, UnsupportedMediaType

logger = logging.getLogger(__name__)

_BASE64_RE = re.compile(r"[A-Za-z0-9+/]*={0,2}")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")

MAX_FILENAME_LENGTH = 100


@dataclass
class MediaPayload:
    data: str  # base64
    mime_type: str
    file_name: str
    size_bytes: float

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)

    def decode(self) -> bytes:
        return base64.b64decode(self.data)

    def data_url(self, mime_type: str | None = None) -> str:
        return f"data:{mime_type or self.mime_type};base64,{self.data}"


def estimate_decoded_size(encoded: str) -> float:
    """Base64 expands 3 bytes into 4 characters."""
    return len(encoded) * 3 / 4


def sanitize_filename(file_name) -> str:
    if not file_name:
        return "unknown"
    return _UNSAFE_FILENAME_CHARS.sub("_", str(file_name))[:MAX_FILENAME_LENGTH]


class MediaValidator:
    """Checks an inbound base64 payload before any upstream call is made."""

    def __init__(self, settings: MediaSettings | None = None) -> None:
        self.settings = settings or MediaSettings()

    @property
    def max_bytes(self) -> float:
        return self.settings.max_file_size_mb * 1024 * 1024

    def validate(self, audio, mime_type, file_name=None) -> MediaPayload:
        if not audio or not isinstance(audio, str):
            raise InvalidInput("No audio/video data provided")

        if not mime_type or not isinstance(mime_type, str):
            raise InvalidInput("MIME type is required")

        allowed = self.settings.allowed_mime_types
        if mime_type not in allowed:
            raise UnsupportedMediaType(
                f'Invalid file type "{mime_type}". Supported types: {", ".join(allowed)}'
            )

        size_bytes = estimate_decoded_size(audio)
        if size_bytes > self.max_bytes:
            size_mb = size_bytes / (1024 * 1024)
            raise PayloadTooLarge(
                f"File too large ({size_mb:.1f}MB). "
                f"Maximum size is {self.settings.max_file_size_mb:g}MB"
            )

        if not _BASE64_RE.fullmatch(audio):
            raise MalformedEncoding("Invalid base64 data format")
        try:
            base64.b64decode(audio, validate=True)
        except binascii.Error:
            raise MalformedEncoding("Invalid base64 data format (bad length or padding)")

        payload = MediaPayload(
            data=audio,
            mime_type=mime_type,
            file_name=sanitize_filename(file_name),
            size_bytes=size_bytes,
        )
        logger.info(
            "Received file: %s type=%s size=%.2f MB",
            payload.file_name, payload.mime_type, payload.size_mb,
        )
        return payload
