"""
Identity resolution.
====================

Every protected request carries up to two credentials:

1. an external identity bearer token (``Authorization: Bearer ...``)
2. a local session token (``token`` cookie)

They are extracted once into an ordered list of tagged credentials and
walked in order. The first success wins; a failed external verification
falls through to the session credential, a failed session verification is
terminal. Nothing is retried.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional

from services.errors import PrincipalNotFound, Unauthenticated
from services.models import User
from services.users import UserRepository

from .identity_providers import ExternalIdentityError, ExternalIdentityVerifier
from .session_tokens import SESSION_COOKIE, InvalidSessionToken, SessionIssuer, SubjectKind

logger = logging.getLogger(__name__)


class CredentialKind(str, Enum):
    EXTERNAL = "external"
    SESSION = "session"


@dataclass(frozen=True)
class Credential:
    kind: CredentialKind
    token: str


def extract_credentials(
    headers: Mapping[str, str],
    cookies: Mapping[str, str],
) -> List[Credential]:
    """Collect the request's credentials, external first."""
    found: List[Credential] = []

    auth = headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token:
            found.append(Credential(CredentialKind.EXTERNAL, token))

    session = cookies.get(SESSION_COOKIE)
    if session:
        found.append(Credential(CredentialKind.SESSION, session))

    return found


class IdentityResolver:
    def __init__(
        self,
        users: UserRepository,
        sessions: SessionIssuer,
        verifier: ExternalIdentityVerifier,
    ):
        self.users = users
        self.sessions = sessions
        self.verifier = verifier

    async def resolve(self, credentials: List[Credential]) -> User:
        """Produce the request principal.

        Raises:
            Unauthenticated: no usable credential, or the session token is invalid
            PrincipalNotFound: the session token names a user that does not exist
        """
        for credential in credentials:
            if credential.kind is CredentialKind.EXTERNAL:
                user = await self._from_external(credential.token)
                if user is not None:
                    return user
            elif credential.kind is CredentialKind.SESSION:
                return await self._from_session(credential.token)

        raise Unauthenticated("Not authorized, no token")

    async def _from_external(self, token: str) -> Optional[User]:
        try:
            identity = await self.verifier.verify(token)
        except ExternalIdentityError as exc:
            logger.warning(f"[IdentityResolver] External token verification failed: {exc}")
            return None

        user, _ = await self.users.get_or_provision(identity, default_name="Firebase User")
        return user

    async def _from_session(self, token: str) -> User:
        try:
            claim = self.sessions.verify(token)
        except InvalidSessionToken as exc:
            logger.warning(f"[IdentityResolver] Session token invalid: {exc}")
            raise Unauthenticated("Not authorized, token failed")

        if claim.kind is SubjectKind.INTERNAL_ID:
            user = await self.users.get_by_id(claim.subject)
        else:
            user = await self.users.get_by_uid(claim.subject)

        if user is None:
            raise PrincipalNotFound("User not found")
        return user


__all__ = ["CredentialKind", "Credential", "extract_credentials", "IdentityResolver"]
