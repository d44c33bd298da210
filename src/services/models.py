"""Domain records and their JSON shape.

Rows are stored snake_case; the API speaks the camelCase field names the
web client already uses (``postType``, ``contactEmail``, ``photoURL``...).
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class User(Record):
    """A principal. ``email`` is the logical unique key."""
    id: str
    name: str
    email: str
    uid: Optional[str] = None
    is_admin: bool = False
    photo_url: str = Field("", alias="photoURL")
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            uid=row.get("uid"),
            is_admin=bool(row.get("is_admin")),
            photo_url=row.get("photo_url") or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class Item(Record):
    id: str
    post_type: str
    thumbnail: str
    title: str
    description: str = ""
    category: str
    location: str
    date: str
    contact_name: str
    contact_email: str
    # legacy owner identifier, only present on older records
    user_id: Optional[str] = None
    status: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Item":
        return cls(**{key: row.get(key) for key in cls.model_fields if key in row})


class OriginalItemData(Record):
    title: str
    description: str = ""
    category: str
    location: str
    date: str
    thumbnail: str


class Party(Record):
    name: str
    email: str


class Claimant(Record):
    user_id: str
    name: str
    email: str
    photo_url: Optional[str] = Field(None, alias="photoURL")


class Recovery(Record):
    id: str
    item_id: str
    original_post_type: str
    original_item_data: OriginalItemData
    original_owner: Party
    recovered_by: Claimant
    recovered_location: str
    recovered_date: str
    notes: str = ""
    recovery_status: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Recovery":
        return cls(
            id=row["id"],
            item_id=row["item_id"],
            original_post_type=row["original_post_type"],
            original_item_data=OriginalItemData(
                title=row["original_title"],
                description=row.get("original_description") or "",
                category=row["original_category"],
                location=row["original_location"],
                date=row["original_date"],
                thumbnail=row["original_thumbnail"],
            ),
            original_owner=Party(
                name=row["original_owner_name"],
                email=row["original_owner_email"],
            ),
            recovered_by=Claimant(
                user_id=row["recovered_by_user_id"],
                name=row["recovered_by_name"],
                email=row["recovered_by_email"],
                photo_url=row.get("recovered_by_photo_url"),
            ),
            recovered_location=row["recovered_location"],
            recovered_date=row["recovered_date"],
            notes=row.get("notes") or "",
            recovery_status=row["recovery_status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


__all__ = ["User", "Item", "Recovery", "OriginalItemData", "Party", "Claimant"]
