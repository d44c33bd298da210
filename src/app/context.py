"""Process-wide application context.

Built once at startup and handed to every component by reference; routes
reach it through ``app.deps.get_context``.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from databases import Database

from auth.guard import AuthorizationGuard
from auth.identity_providers import ExternalIdentityVerifier, build_verifier
from auth.resolver import IdentityResolver
from auth.session_tokens import SessionIssuer
from services.database import create_database, init_schema
from services.items import ItemStore
from services.recoveries import RecoveryCoordinator
from services.users import UserRepository

from .config import Settings

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    db: Database
    sessions: SessionIssuer
    verifier: ExternalIdentityVerifier
    users: UserRepository
    identity: IdentityResolver
    guard: AuthorizationGuard
    items: ItemStore
    recoveries: RecoveryCoordinator

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        verifier: Optional[ExternalIdentityVerifier] = None,
        bypass_ownership: bool = False,
    ) -> "AppContext":
        """Wire every component. ``bypass_ownership`` is for tests only."""
        db = create_database(settings.database_url)
        sessions = SessionIssuer(settings.jwt_secret)
        verifier = verifier or build_verifier(settings)
        users = UserRepository(db)
        guard = AuthorizationGuard(bypass_ownership=bypass_ownership)
        items = ItemStore(db, guard)
        return cls(
            settings=settings,
            db=db,
            sessions=sessions,
            verifier=verifier,
            users=users,
            identity=IdentityResolver(users, sessions, verifier),
            guard=guard,
            items=items,
            recoveries=RecoveryCoordinator(
                db, items, guard, max_attempts=settings.transaction_max_attempts
            ),
        )

    async def startup(self) -> None:
        await self.db.connect()
        await init_schema(self.db)
        logger.info(f"[AppContext] Connected to {self.db.url.dialect} backing store")

    async def shutdown(self) -> None:
        await self.db.disconnect()
        logger.info("[AppContext] Backing store disconnected")


__all__ = ["AppContext"]
