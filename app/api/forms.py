from __future__ import annotations

"""
Form-input helpers for the content endpoints.

Create/update endpoints accept `multipart/form-data` (or JSON for text-only
updates). Starlette parses the body; this module turns the raw values into
validated Python values and collects per-field error messages so a request
reports every problem at once (422 ``errors`` map).
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from fastapi import Request
from starlette.datastructures import UploadFile

from app.core.exceptions import ValidationFailed

# Accepted upload extensions → stored Content-Type
MIME_BY_EXTENSION: Dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
}
MEDIA_EXTENSIONS = ("jpg", "jpeg", "png", "mp4", "mov")
IMAGE_EXTENSIONS = ("jpeg", "png", "jpg")

PUBLISHED_AT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Primary and foreign keys are BIGINT columns
BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1


class ErrorBag:
    """Ordered field → messages accumulator."""

    def __init__(self) -> None:
        self.errors: Dict[str, List[str]] = {}

    def add(self, field: str, message: str) -> None:
        bucket = self.errors.setdefault(field, [])
        if message not in bucket:
            bucket.append(message)

    def has(self, field: str) -> bool:
        return field in self.errors

    def __bool__(self) -> bool:
        return bool(self.errors)

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationFailed(self.errors)


@dataclass
class ValidatedUpload:
    data: bytes
    filename: str
    extension: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


async def read_payload(request: Request) -> Mapping[str, Any]:
    """Parsed request body: JSON object or (multipart/urlencoded) form."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationFailed({"body": ["The request body must be valid JSON."]})
        if not isinstance(body, dict):
            raise ValidationFailed({"body": ["The request body must be a JSON object."]})
        return body
    if not content_type:
        return {}
    return await request.form()


def is_upload(value: Any) -> bool:
    return isinstance(value, UploadFile)


def has_upload(payload: Mapping[str, Any], field: str) -> bool:
    """True when `field` carries an actual file (browsers send empty parts for none)."""
    value = payload.get(field)
    return is_upload(value) and bool(value.filename)


def text_field(payload: Mapping[str, Any], field: str, errors: ErrorBag, *, label: Optional[str] = None) -> Optional[str]:
    """
    Return the field as a string (`None` when absent).

    Files and non-scalar JSON values are rejected with a "must be a string"
    error. Numbers sent as JSON are coerced to text.
    """
    if field not in payload:
        return None
    value = payload.get(field)
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    errors.add(field, f"The {label or field.replace('_', ' ')} field must be a string.")
    return None


def fits_bigint(value: int) -> bool:
    return BIGINT_MIN <= value <= BIGINT_MAX


def parse_int(value: Any) -> Optional[int]:
    """Parse an integer from a form or JSON value; `None` when it is not one."""
    if value is None or is_upload(value) or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    return None


def integer_field(payload: Mapping[str, Any], field: str) -> Optional[int]:
    """Parse an integer id; `None` when absent, empty, not an integer or outside the BIGINT range."""
    value = parse_int(payload.get(field))
    if value is None or not fits_bigint(value):
        return None
    return value


async def validate_upload(
    value: Any,
    *,
    field: str,
    label: str,
    extensions: Sequence[str],
    max_kb: int,
    errors: ErrorBag,
    image_only: bool = False,
) -> Optional[ValidatedUpload]:
    """
    Validate an uploaded file by extension, kind and size.

    The stored Content-Type comes from the extension, never from the client.
    """
    if not is_upload(value) or not value.filename:
        errors.add(field, f"The {label} field must be a file.")
        return None

    filename = value.filename
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if image_only and MIME_BY_EXTENSION.get(extension, "").split("/")[0] != "image":
        errors.add(field, f"The {label} field must be an image.")
    if extension not in extensions:
        errors.add(field, f"The {label} field must be a file of type: {', '.join(extensions)}.")

    data = await value.read()
    if len(data) > max_kb * 1024:
        errors.add(field, f"The {label} field must not be greater than {max_kb} kilobytes.")

    if errors.has(field):
        return None
    return ValidatedUpload(
        data=data,
        filename=filename,
        extension=extension,
        content_type=MIME_BY_EXTENSION[extension],
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_published_at_strict(value: str) -> Optional[datetime]:
    """`YYYY-MM-DDTHH:MM:SSZ` only; `None` when it does not match."""
    try:
        return datetime.strptime(value, PUBLISHED_AT_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def parse_datetime_lenient(value: str) -> Optional[datetime]:
    """Any ISO-8601 date/datetime (trailing `Z` allowed), normalized to UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


__all__ = [
    "MEDIA_EXTENSIONS",
    "IMAGE_EXTENSIONS",
    "MIME_BY_EXTENSION",
    "ErrorBag",
    "ValidatedUpload",
    "read_payload",
    "is_upload",
    "has_upload",
    "text_field",
    "parse_int",
    "fits_bigint",
    "integer_field",
    "validate_upload",
    "parse_published_at_strict",
    "parse_datetime_lenient",
]
