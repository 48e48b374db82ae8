"""Incident photo decoding and storage."""

from __future__ import annotations

import base64
import binascii
import re
import uuid
from pathlib import Path
from typing import Optional, Protocol

from housekeeping.domain.errors import PhotoDecodeError, StorageError, ValidationError
from housekeeping.domain.models import PhotoUpload
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

ALLOWED_EXTENSIONS = frozenset({"jpg", "png", "webp"})
EXTENSION_ALIASES = {"jpeg": "jpg"}
MIME_TYPES = {"jpg": "image/jpeg", "png": "image/png", "webp": "image/webp"}

_DATA_URL_PREFIX = re.compile(r"^data:[\w/+.-]*;base64,", re.IGNORECASE)


def detect_image_extension(content: bytes) -> Optional[str]:
    """Derive the file extension from the payload signature."""
    if content.startswith(b"\xff\xd8\xff"):
        return "jpg"
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if len(content) >= 12 and content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "webp"
    return None


def decode_photo_payload(payload: Optional[str]) -> Optional[bytes]:
    """Decode a data URL or raw base64 string.

    Returns ``None`` for a missing or empty payload. Raises
    ``PhotoDecodeError`` when the text is not valid base64.
    """
    if payload is None:
        return None
    text = _DATA_URL_PREFIX.sub("", payload.strip(), count=1)
    text = "".join(text.split())
    if not text:
        return None
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PhotoDecodeError("Photo payload is not valid base64") from exc


def parse_photo_upload(payload: Optional[str]) -> PhotoUpload:
    """Strict decode used by online uploads: empty or non-image payloads fail."""
    content = decode_photo_payload(payload)
    if not content:
        raise ValidationError("Photo payload is empty")
    extension = detect_image_extension(content)
    if extension is None:
        raise ValidationError("Photo must be a jpg, png or webp image")
    return PhotoUpload(content=content, extension=extension)


def encode_photo_data_url(content: bytes) -> str:
    extension = detect_image_extension(content)
    if extension is None:
        raise ValidationError("Photo must be a jpg, png or webp image")
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{MIME_TYPES[extension]};base64,{encoded}"


def normalize_extension(suggested_ext: str) -> str:
    extension = suggested_ext.lower().lstrip(".")
    extension = EXTENSION_ALIASES.get(extension, extension)
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"Unsupported photo type: {suggested_ext}")
    return extension


class PhotoStorage(Protocol):
    def store(self, content: bytes, suggested_ext: str) -> str:
        ...


class LocalPhotoStorage:
    """Writes photos below a directory and returns their public URL."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._root = Path(self._settings.photo_storage_dir)
        self._url_prefix = self._settings.photo_url_prefix

    def store(self, content: bytes, suggested_ext: str) -> str:
        extension = normalize_extension(suggested_ext)
        filename = f"{uuid.uuid4().hex}.{extension}"
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            (self._root / filename).write_bytes(content)
        except OSError as exc:
            raise StorageError(f"Failed to store photo: {exc}") from exc
        logger.info("Stored incident photo %s (%s bytes)", filename, len(content))
        return f"{self._url_prefix}/{filename}"
