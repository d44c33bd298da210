"""Ownership checks gating item and recovery mutation."""
import logging
from enum import Enum

from services.errors import Forbidden
from services.models import Item, Recovery, User

logger = logging.getLogger(__name__)


class Action(str, Enum):
    UPDATE = "update"
    DELETE = "delete"


class AuthorizationGuard:
    """Owner-vs-claimant authorization.

    An item is owned by the user whose email matches ``contactEmail``. Older
    items may also carry a ``user_id`` owner field, honoured for deletes.

    ``bypass_ownership`` exists for tests only and is never read from the
    environment.
    """

    def __init__(self, *, bypass_ownership: bool = False):
        self.bypass_ownership = bypass_ownership

    def is_owner(self, principal: User, item: Item, action: Action) -> bool:
        if principal.email == item.contact_email:
            return True
        if action is Action.DELETE and item.user_id is not None:
            return item.user_id == principal.id
        return False

    def authorize(self, principal: User, item: Item, action: Action) -> None:
        if self.bypass_ownership:
            return
        if not self.is_owner(principal, item, action):
            logger.info(
                f"[AuthorizationGuard] {principal.email} denied {action.value} on item {item.id}"
            )
            if action is Action.DELETE:
                raise Forbidden("Not authorized to delete this item")
            raise Forbidden("Not authorized")

    def can_manage_recovery(self, principal: User, recovery: Recovery) -> bool:
        return (
            principal.is_admin
            or principal.id == recovery.recovered_by.user_id
            or principal.email == recovery.recovered_by.email
            or principal.email == recovery.original_owner.email
        )

    def authorize_recovery(self, principal: User, recovery: Recovery) -> None:
        """Only the claimant, the original owner or an admin may change a recovery."""
        if self.bypass_ownership:
            return
        if not self.can_manage_recovery(principal, recovery):
            logger.info(
                f"[AuthorizationGuard] {principal.email} denied update on recovery {recovery.id}"
            )
            raise Forbidden("Not authorized to update this recovery")


__all__ = ["Action", "AuthorizationGuard"]
