"""
Recovery Transaction Coordinator
================================

Mediates claims on items and keeps ``items.status`` consistent with the
``recoveries`` table:

- ``recover`` inserts a Recovery snapshot and flips the item to
  ``recovered`` in one transaction.
- ``delete_item`` removes an item together with every Recovery that
  references it in one transaction.

Business-rule checks run before the transaction and are never retried.
"""

import logging
from typing import Any, Dict, List

from databases import Database

from auth.guard import Action, AuthorizationGuard

from .database import in_clause, row_to_dict, rows_to_dicts, run_in_transaction, utcnow
from .errors import Conflict, NotFound, ValidationError
from .identifiers import RecordRef, new_id, parse_canonical_id
from .items import STATUS_RECOVERED, ItemStore
from .models import Item, Recovery, User
from .schemas import RecoveryClaim, RecoveryUpdate

logger = logging.getLogger(__name__)


class RecoveryCoordinator:
    def __init__(
        self,
        db: Database,
        items: ItemStore,
        guard: AuthorizationGuard,
        *,
        max_attempts: int = 3,
    ):
        self.db = db
        self.items = items
        self.guard = guard
        self.max_attempts = max_attempts

    # ------------------------------------------------------------------
    # recover
    # ------------------------------------------------------------------

    async def recover(self, principal: User, ref: RecordRef, claim: RecoveryClaim) -> Recovery:
        """Record ``principal``'s claim on someone else's item.

        Raises:
            NotFound: the item does not exist
            ValidationError: location or date missing
            Conflict: the principal owns the item
            ServerError: the transaction could not be committed
        """
        item = await self.items.lookup(ref)

        # self-recovery is rejected whatever else the claim contains
        if principal.email == item.contact_email:
            raise Conflict("You cannot recover your own item")

        if claim.recovered_location is None or claim.recovered_date is None:
            raise ValidationError("Missing required fields")

        row = self._snapshot(
            item,
            principal,
            claim.recovered_location,
            claim.recovered_date.isoformat(),
            claim.notes or "",
        )

        async def unit() -> None:
            await self._insert_recovery(row)
            await self._mark_recovered(item.id, row["created_at"])

        await run_in_transaction(
            self.db,
            unit,
            label=f"recover item {item.id}",
            max_attempts=self.max_attempts,
        )
        logger.info(
            f"[RecoveryCoordinator] {principal.email} recovered item {item.id} "
            f"owned by {item.contact_email} (recovery {row['id']})"
        )
        return Recovery.from_row(row)

    def _snapshot(
        self,
        item: Item,
        claimant: User,
        recovered_location: str,
        recovered_date: str,
        notes: str,
    ) -> Dict[str, Any]:
        now = utcnow()
        return {
            "id": new_id(),
            "item_id": item.id,
            "original_post_type": item.post_type,
            "original_title": item.title,
            "original_description": item.description,
            "original_category": item.category,
            "original_location": item.location,
            "original_date": item.date,
            "original_thumbnail": item.thumbnail,
            "original_owner_name": item.contact_name,
            "original_owner_email": item.contact_email,
            "recovered_by_user_id": claimant.id,
            "recovered_by_name": claimant.name,
            "recovered_by_email": claimant.email,
            "recovered_by_photo_url": claimant.photo_url or None,
            "recovered_location": recovered_location,
            "recovered_date": recovered_date,
            "notes": notes,
            "recovery_status": "pending",
            "created_at": now,
            "updated_at": now,
        }

    async def _insert_recovery(self, row: Dict[str, Any]) -> None:
        columns = ", ".join(row)
        values = ", ".join(f":{key}" for key in row)
        await self.db.execute(f"INSERT INTO recoveries ({columns}) VALUES ({values})", row)

    async def _mark_recovered(self, item_id: str, updated_at: str) -> None:
        updated = await self.db.fetch_one(
            """
            UPDATE items SET status = :status, updated_at = :updated_at
            WHERE id = :item_id
            RETURNING id
            """,
            {"status": STATUS_RECOVERED, "updated_at": updated_at, "item_id": item_id},
        )
        if updated is None:
            # deleted between lookup and commit; roll the insert back
            raise NotFound("Item not found")

    # ------------------------------------------------------------------
    # delete
    # ------------------------------------------------------------------

    async def delete_item(self, principal: User, ref: RecordRef) -> None:
        """Delete an owned item and every Recovery referencing it."""
        item = await self.items.lookup(ref)
        self.guard.authorize(principal, item, Action.DELETE)

        async def unit() -> int:
            await self.db.execute("DELETE FROM items WHERE id = :item_id", {"item_id": item.id})
            removed = await self.db.fetch_all(
                "DELETE FROM recoveries WHERE item_id = :item_id RETURNING id",
                {"item_id": item.id},
            )
            return len(removed)

        removed = await run_in_transaction(
            self.db,
            unit,
            label=f"delete item {item.id}",
            max_attempts=self.max_attempts,
        )
        logger.info(
            f"[RecoveryCoordinator] {principal.email} deleted item {item.id} "
            f"and {removed} recovery record(s)"
        )

    # ------------------------------------------------------------------
    # recovery records
    # ------------------------------------------------------------------

    async def get_recovery(self, recovery_id: str) -> Recovery:
        row = await self.db.fetch_one(
            "SELECT * FROM recoveries WHERE id = :id", {"id": recovery_id}
        )
        if row is None:
            raise NotFound("Recovery not found")
        return Recovery.from_row(row_to_dict(row))

    async def update_recovery(
        self,
        principal: User,
        raw_recovery_id: str,
        payload: RecoveryUpdate,
    ) -> Recovery:
        """Apply the supplied fields to a recovery the principal is party to."""
        recovery_id = parse_canonical_id(raw_recovery_id, message="Invalid recovery ID")

        changes = payload.changes()
        if not changes:
            raise ValidationError("No valid fields to update")

        recovery = await self.get_recovery(recovery_id)
        self.guard.authorize_recovery(principal, recovery)

        changes["updated_at"] = utcnow()
        assignments = ", ".join(f"{column} = :{column}" for column in changes)
        await self.db.execute(
            f"UPDATE recoveries SET {assignments} WHERE id = :recovery_id",
            {**changes, "recovery_id": recovery_id},
        )
        logger.info(f"[RecoveryCoordinator] {principal.email} updated recovery {recovery_id}")
        return await self.get_recovery(recovery_id)

    async def list_for(self, principal: User) -> List[Dict[str, Any]]:
        """Recoveries where ``principal`` is claimant or original owner.

        Each entry carries ``item``: the live item if it still exists,
        otherwise the snapshot taken at claim time.
        """
        rows = await self.db.fetch_all(
            """
            SELECT * FROM recoveries
            WHERE recovered_by_user_id = :user_id OR original_owner_email = :email
            ORDER BY created_at DESC
            """,
            {"user_id": principal.id, "email": principal.email},
        )
        recoveries = [Recovery.from_row(row) for row in rows_to_dicts(rows)]
        if not recoveries:
            return []

        placeholders, params = in_clause("item", {r.item_id for r in recoveries})
        item_rows = await self.db.fetch_all(
            f"SELECT * FROM items WHERE id IN ({placeholders})", params
        )
        live = {row["id"]: Item.from_row(row) for row in rows_to_dicts(item_rows)}

        results = []
        for recovery in recoveries:
            item = live.get(recovery.item_id)
            entry = recovery.to_api()
            entry["item"] = item.to_api() if item else entry["originalItemData"]
            results.append(entry)
        return results


__all__ = ["RecoveryCoordinator"]
