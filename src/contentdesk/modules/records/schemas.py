"""Pydantic schemas for record operations."""

import base64
import binascii
from datetime import date, datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from contentdesk.core.constants import (
    DATA_URL_PREFIX,
    MAX_GENERATED_RECORDS,
    MAX_GENERATION_SPACING_DAYS,
    MAX_RECORD_ID_LENGTH,
    MAX_TITLE_LENGTH,
)
from contentdesk.core.errors import ValidationFailed
from contentdesk.modules.records.status import MediaKind, RecordStatus


# ============================================================
# Record Snapshots
# ============================================================


class RecordSnapshot(BaseModel):
    """Immutable copy of a record as one session sees it.

    Sessions hold lists of snapshots as their in-memory view and replace
    them with ``model_copy(update=...)`` on every edit.
    """

    id: str
    tenant_id: UUID
    title: str = ""
    date: date
    status: RecordStatus
    media_url: str | None = None
    media_kind: MediaKind = MediaKind.IMAGE
    media_description: str = ""
    caption: str = ""
    hashtags: list[str] = []
    notes: str = ""
    revision: int = 1
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class RecordListResponse(BaseModel):
    """Schema for a session's record view."""

    items: list[RecordSnapshot]
    total: int
    tenant_id: UUID | None


# ============================================================
# Edits
# ============================================================

EditableField = Literal[
    "title",
    "date",
    "status",
    "media_url",
    "media_kind",
    "media_description",
    "caption",
    "hashtags",
    "notes",
]

_FIELD_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "title": TypeAdapter(str),
    "date": TypeAdapter(date),
    "status": TypeAdapter(RecordStatus),
    "media_url": TypeAdapter(str | None),
    "media_kind": TypeAdapter(MediaKind),
    "media_description": TypeAdapter(str),
    "caption": TypeAdapter(str),
    "hashtags": TypeAdapter(list[str]),
    "notes": TypeAdapter(str),
}

EDITABLE_FIELDS = frozenset(_FIELD_ADAPTERS)


class FieldEdit(BaseModel):
    """Schema for a single-field edit."""

    field: EditableField
    value: Any = None


class ApproveAllResponse(BaseModel):
    """Result of approving every record in view."""

    approved: list[str]


class CaptionRequest(BaseModel):
    """Schema for requesting a generated caption."""

    guidelines: str | None = None


def data_url_size(url: str) -> int:
    """Decoded byte size of an inline ``data:`` URL, 0 for anything else."""
    if not url.startswith(DATA_URL_PREFIX):
        return 0
    _, _, payload = url.partition(",")
    return len(payload) * 3 // 4


def decode_data_url(url: str) -> tuple[bytes, str]:
    """Split an inline base64 ``data:`` URL into bytes and mime type.

    Raises:
        ValueError: If the URL is not a base64 data URL
    """
    header, sep, payload = url.partition(",")
    if not url.startswith(DATA_URL_PREFIX) or not sep or ";base64" not in header:
        raise ValueError("not a base64 data URL")
    mime_type = header[len(DATA_URL_PREFIX):].split(";", 1)[0] or "image/jpeg"
    try:
        return base64.b64decode(payload, validate=True), mime_type
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e


def infer_media_kind(url: str | None) -> MediaKind:
    """Best-effort guess of the media kind from a URL."""
    if not url:
        return MediaKind.IMAGE
    lowered = url.lower()
    if lowered.startswith("data:video/"):
        return MediaKind.VIDEO
    path = lowered.split("?", 1)[0]
    if path.endswith((".mp4", ".mov", ".webm", ".m4v")):
        return MediaKind.VIDEO
    return MediaKind.IMAGE


def coerce_field_value(field: str, value: Any, max_media_bytes: int) -> Any:
    """Validate and coerce one edited value before anything is written.

    Args:
        field: Name of the edited field
        value: Raw value from the caller
        max_media_bytes: Upper bound for inline media

    Returns:
        The value converted to the field's type

    Raises:
        ValidationFailed: If the field is not editable or the value is invalid
    """
    adapter = _FIELD_ADAPTERS.get(field)
    if adapter is None:
        raise ValidationFailed(
            f"Field '{field}' cannot be edited",
            errors=[{"field": field, "message": "not an editable field"}],
        )

    try:
        coerced = adapter.validate_python(value)
    except PydanticValidationError as e:
        raise ValidationFailed(
            f"Invalid value for '{field}'",
            errors=[
                {"field": field, "message": err.get("msg", "Invalid value")}
                for err in e.errors()
            ],
        ) from e

    if field == "title" and len(coerced) > MAX_TITLE_LENGTH:
        raise ValidationFailed(
            "Title is too long",
            errors=[{"field": field, "message": f"at most {MAX_TITLE_LENGTH} characters"}],
        )

    if field == "hashtags":
        coerced = [tag.strip().lstrip("#") for tag in coerced if tag.strip().lstrip("#")]

    if field == "media_url" and coerced and data_url_size(coerced) > max_media_bytes:
        raise ValidationFailed(
            "Media is too large. Please use a file under "
            f"{max_media_bytes // (1024 * 1024)}MB.",
            errors=[{"field": field, "message": f"exceeds {max_media_bytes} bytes"}],
        )

    return coerced


def to_column_value(value: Any) -> Any:
    """Convert a coerced field value to what the column stores."""
    if isinstance(value, RecordStatus | MediaKind):
        return value.value
    return value


# ============================================================
# Creation
# ============================================================


class RecordCreate(BaseModel):
    """Schema for creating a record.

    ``id`` may be supplied by the caller; otherwise a random one is used.
    ``tenant_id`` is required when the session sees every tenant.
    """

    id: str | None = Field(None, min_length=1, max_length=MAX_RECORD_ID_LENGTH)
    tenant_id: UUID | None = None
    title: str = Field("", max_length=MAX_TITLE_LENGTH)
    date: date
    status: RecordStatus = RecordStatus.DRAFT
    media_url: str | None = None
    media_kind: MediaKind | None = None
    media_description: str = ""
    caption: str = ""
    hashtags: list[str] = []
    notes: str = ""


class GenerateRecordsRequest(BaseModel):
    """Schema for generating Draft records from brand post ideas.

    ``tenant_id`` is required when the session sees every tenant.
    """

    tenant_id: UUID | None = None
    count: int = Field(3, ge=1, le=MAX_GENERATED_RECORDS)
    start: date
    every_days: int = Field(1, ge=1, le=MAX_GENERATION_SPACING_DAYS)
    guidelines: str | None = None


class GenerateRecordsResponse(BaseModel):
    """Records created by a generation request."""

    items: list[RecordSnapshot]
    total: int
