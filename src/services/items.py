"""Item records: creation, allowlisted updates, dual-identifier lookup, listings."""
import logging
from typing import Any, Dict, List, Optional

from databases import Database

from auth.guard import Action, AuthorizationGuard

from .database import in_clause, row_to_dict, rows_to_dicts, utcnow
from .errors import NotFound
from .identifiers import RecordRef, new_id
from .models import Item, User
from .schemas import POST_TYPES, ItemCreate, ItemUpdate

logger = logging.getLogger(__name__)

STATUS_NOT_RECOVERED = "not-recovered"
STATUS_RECOVERED = "recovered"

STATUS_FILTERS = {
    "active": STATUS_NOT_RECOVERED,
    "recovered": STATUS_RECOVERED,
}


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ItemStore:
    def __init__(self, db: Database, guard: AuthorizationGuard):
        self.db = db
        self.guard = guard

    async def create(self, principal: User, payload: ItemCreate) -> str:
        """Insert a new item owned by ``principal``."""
        item_id = new_id()
        now = utcnow()
        await self.db.execute(
            """
            INSERT INTO items (
                id, post_type, thumbnail, title, description, category, location,
                date, contact_name, contact_email, status, created_at, updated_at
            )
            VALUES (
                :id, :post_type, :thumbnail, :title, :description, :category, :location,
                :date, :contact_name, :contact_email, :status, :created_at, :updated_at
            )
            """,
            {
                **payload.changes(),
                "id": item_id,
                "description": payload.description or "",
                "contact_name": principal.name,
                "contact_email": principal.email,
                "status": STATUS_NOT_RECOVERED,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info(f"[ItemStore] {principal.email} created {payload.post_type} item {item_id}")
        return item_id

    async def find(self, ref: RecordRef) -> Optional[Item]:
        placeholders, params = in_clause("id", ref.candidates)
        row = await self.db.fetch_one(
            f"SELECT * FROM items WHERE id IN ({placeholders})", params
        )
        return Item.from_row(row_to_dict(row)) if row else None

    async def lookup(self, ref: RecordRef) -> Item:
        item = await self.find(ref)
        if item is None:
            raise NotFound("Item not found")
        return item

    async def update(self, principal: User, ref: RecordRef, payload: ItemUpdate) -> int:
        """Apply the supplied fields to an owned item."""
        item = await self.lookup(ref)
        self.guard.authorize(principal, item, Action.UPDATE)

        changes = payload.changes()
        changes["updated_at"] = utcnow()
        assignments = ", ".join(f"{column} = :{column}" for column in changes)
        rows = await self.db.fetch_all(
            f"UPDATE items SET {assignments} WHERE id = :item_id RETURNING id",
            {**changes, "item_id": item.id},
        )
        logger.info(
            f"[ItemStore] {principal.email} updated item {item.id} "
            f"({', '.join(sorted(changes))})"
        )
        return len(rows)

    async def list(
        self,
        *,
        post_type: Optional[str] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Item]:
        where_clauses: List[str] = []
        params: Dict[str, Any] = {}

        if post_type in POST_TYPES:
            where_clauses.append("post_type = :post_type")
            params["post_type"] = post_type

        if status in STATUS_FILTERS:
            where_clauses.append("status = :status")
            params["status"] = STATUS_FILTERS[status]

        if category:
            where_clauses.append("category = :category")
            params["category"] = category

        if location:
            where_clauses.append("LOWER(location) LIKE :location ESCAPE '\\'")
            params["location"] = _like_pattern(location)

        if search:
            where_clauses.append(
                "(LOWER(title) LIKE :search ESCAPE '\\' OR LOWER(description) LIKE :search ESCAPE '\\')"
            )
            params["search"] = _like_pattern(search)

        where = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
        rows = await self.db.fetch_all(
            f"SELECT * FROM items {where} ORDER BY created_at DESC", params
        )
        return [Item.from_row(row) for row in rows_to_dicts(rows)]

    async def list_by_email(self, email: str) -> List[Item]:
        rows = await self.db.fetch_all(
            "SELECT * FROM items WHERE contact_email = :email ORDER BY created_at DESC",
            {"email": email},
        )
        return [Item.from_row(row) for row in rows_to_dicts(rows)]


__all__ = ["ItemStore", "STATUS_NOT_RECOVERED", "STATUS_RECOVERED"]
