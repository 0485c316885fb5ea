"""Turn captured frames and imported files into photo records."""

import base64
import binascii
from collections.abc import Iterable
from uuid import uuid4

from handy_report.domain.photos import PhotoRecord
from handy_report.errors import ValidationError


def photo_from_frame(image_bytes: bytes) -> PhotoRecord:
    """Build a record for a single camera frame."""
    return PhotoRecord(
        id=f"img_{uuid4().hex}",
        src=to_data_url(image_bytes),
        mime_type=detect_mime_type(image_bytes),
    )


def photos_from_files(files: Iterable[bytes]) -> list[PhotoRecord]:
    """Build one record per imported file, keeping the import order."""
    return [photo_from_frame(content) for content in files]


def decode_upload(value: str) -> bytes:
    """Decode raw base64 or a base64 data URL into image bytes."""
    payload = value.strip()
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Image payload is not valid base64") from exc
    if not decoded:
        raise ValidationError("Image payload is empty")
    return decoded


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
