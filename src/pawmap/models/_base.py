"""Base model, enum and coercion helpers for store documents.

Every decoded document model inherits from :class:`PawmapBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase wire keys map to snake_case
  fields.
* A ``model_validator(mode="before")`` that drops ``None`` and blank-string
  values so the field default is used instead.

Category-like enums inherit from :class:`PawmapStrEnum`, whose ``_missing_``
hook maps unmapped values to the ``OTHER`` member.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def safe_float(value: Any) -> float | None:
    """Convert *value* to a finite float, returning ``None`` on failure."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def parse_store_timestamp(value: Any) -> datetime | None:
    """Convert a store timestamp to a UTC datetime.

    Accepts ISO-8601 strings, epoch seconds or milliseconds, and
    ``{"seconds": ..., "nanos": ...}`` objects. A pending server timestamp
    (``{"$serverTimestamp": true}``) or ``None`` yields ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, dict):
        if "seconds" not in value:
            return None
        seconds = safe_float(value.get("seconds"))
        if seconds is None:
            return None
        nanos = safe_float(value.get("nanos")) or 0.0
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    raise ValueError(f"unsupported timestamp value: {value!r}")


StoreTimestamp = Annotated[datetime | None, BeforeValidator(parse_store_timestamp)]
"""Annotated type that coerces store timestamps to UTC datetimes (``None`` while pending)."""


class PawmapStrEnum(StrEnum):
    """Base for string enums decoded from documents.

    Subclasses define an ``OTHER`` member; values without a mapped member
    resolve to it instead of raising ``ValueError``.
    """

    @classmethod
    def _missing_(cls, value: object) -> PawmapStrEnum | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        other = cls.__members__.get("OTHER")
        return other


class PawmapBaseModel(BaseModel):
    """Base for document models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        return cleaned
