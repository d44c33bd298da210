"""Request bodies accepted by the item and recovery endpoints.

Fields are snake_case (they double as column names) and read from the
camelCase keys the web client sends. Unknown keys are ignored.
"""
import datetime as dt
from typing import Annotated, Any, Dict, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

PostType = Literal["lost", "found"]
RecoveryStatus = Literal["pending", "completed", "rejected"]

POST_TYPES = get_args(PostType)
RECOVERY_STATUSES = get_args(RecoveryStatus)

# Blank or whitespace-only strings are rejected; surrounding whitespace is trimmed.
NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class RequestBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def changes(self) -> Dict[str, Any]:
        """Fields the client actually supplied, null values dropped, dates as ISO text."""
        return self.model_dump(mode="json", exclude_unset=True, exclude_none=True)


class ItemCreate(RequestBody):
    post_type: PostType
    thumbnail: NonEmptyText
    title: NonEmptyText
    description: Optional[str] = None
    category: NonEmptyText
    location: NonEmptyText
    date: dt.date


class ItemUpdate(RequestBody):
    # ``status`` is deliberately absent: it only changes through a recovery.
    post_type: Optional[PostType] = None
    thumbnail: Optional[NonEmptyText] = None
    title: Optional[NonEmptyText] = None
    description: Optional[str] = None
    category: Optional[NonEmptyText] = None
    location: Optional[NonEmptyText] = None
    date: Optional[dt.date] = None


class RecoveryClaim(RequestBody):
    # Presence is checked by the coordinator, after the ownership conflict.
    recovered_location: Optional[NonEmptyText] = None
    recovered_date: Optional[dt.date] = None
    notes: Optional[str] = None


class RecoveryUpdate(RequestBody):
    recovery_status: Optional[RecoveryStatus] = None
    notes: Optional[str] = None
    recovered_location: Optional[NonEmptyText] = None
    recovered_date: Optional[dt.date] = None


__all__ = [
    "POST_TYPES",
    "RECOVERY_STATUSES",
    "ItemCreate",
    "ItemUpdate",
    "RecoveryClaim",
    "RecoveryUpdate",
]
