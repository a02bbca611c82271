from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """Base for stored records and API payloads.

    Keys are camelCase on the wire so the stored documents keep the shape the
    browser front end has always written to localStorage.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


def legacy_id(v):
    # Browser-created records used Date.now() numbers as ids
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


def strip_required(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("field is required")
    return v


def strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if not v:
        raise ValueError("cannot be empty")
    return v


def ensure_aware(v: datetime) -> datetime:
    # Naive timestamps are treated as UTC (toISOString() always was)
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v
