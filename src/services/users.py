"""User records: lookup and first-login provisioning."""
import logging
from typing import Any, Dict, Optional, Tuple

from databases import Database

from auth.identity_providers import ExternalIdentity

from .database import row_to_dict, utcnow
from .identifiers import new_id
from .models import User

logger = logging.getLogger(__name__)


class UserRepository:
    def __init__(self, db: Database):
        self.db = db

    async def _fetch(self, where: str, values: Dict[str, Any]) -> Optional[User]:
        row = await self.db.fetch_one(f"SELECT * FROM users WHERE {where}", values)
        return User.from_row(row_to_dict(row)) if row else None

    async def get_by_id(self, user_id: str) -> Optional[User]:
        return await self._fetch("id = :id", {"id": user_id})

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self._fetch("email = :email", {"email": email})

    async def get_by_uid(self, uid: str) -> Optional[User]:
        return await self._fetch("uid = :uid", {"uid": uid})

    async def provision(
        self,
        *,
        email: str,
        name: str,
        uid: Optional[str],
        photo_url: str = "",
    ) -> User:
        """
        Insert a user keyed by email unless one already exists.

        Concurrent first logins for the same email race on the unique index;
        the loser's insert is a no-op and both read back the same record.
        """
        now = utcnow()
        await self.db.execute(
            """
            INSERT INTO users (id, name, email, uid, is_admin, photo_url, created_at, updated_at)
            VALUES (:id, :name, :email, :uid, :is_admin, :photo_url, :created_at, :updated_at)
            ON CONFLICT (email) DO NOTHING
            """,
            {
                "id": new_id(),
                "name": name,
                "email": email,
                "uid": uid,
                "is_admin": False,
                "photo_url": photo_url,
                "created_at": now,
                "updated_at": now,
            },
        )
        user = await self.get_by_email(email)
        if user is None:
            raise RuntimeError(f"User {email} missing after provisioning")
        logger.info(f"[Users] Provisioned user {user.id} for {email}")
        return user

    async def get_or_provision(
        self,
        identity: ExternalIdentity,
        *,
        default_name: str,
        name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Tuple[User, bool]:
        """Find the user for a verified external identity, creating it on first sight.

        Returns the user and whether it was created by this call.
        """
        user = await self.get_by_email(identity.email)
        if user is not None:
            return user, False

        user = await self.provision(
            email=identity.email,
            name=name or identity.name or default_name,
            uid=identity.uid,
            photo_url=photo_url or identity.picture or "",
        )
        return user, True

    async def apply_login_profile(
        self,
        user: User,
        *,
        name: Optional[str] = None,
        photo_url: Optional[str] = None,
        picture: Optional[str] = None,
    ) -> User:
        """Update only the profile fields a login explicitly supplied.

        ``picture`` (from the identity claim) only fills an empty photo.
        """
        changes: Dict[str, Any] = {}
        if name and user.name != name:
            changes["name"] = name
        if photo_url:
            changes["photo_url"] = photo_url
        elif picture and not user.photo_url:
            changes["photo_url"] = picture

        if not changes:
            return user

        changes["updated_at"] = utcnow()
        assignments = ", ".join(f"{key} = :{key}" for key in changes)
        await self.db.execute(
            f"UPDATE users SET {assignments} WHERE id = :id",
            {**changes, "id": user.id},
        )
        return user.model_copy(update=changes)


__all__ = ["UserRepository"]
