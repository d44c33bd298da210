"""Local session credentials (HS256 JWT carried in the ``token`` cookie)."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt

logger = logging.getLogger(__name__)

SESSION_COOKIE = "token"
SESSION_TTL = timedelta(days=7)
ALGORITHM = "HS256"


class SubjectKind(str, Enum):
    INTERNAL_ID = "userId"
    EXTERNAL_SUBJECT_ID = "uid"


@dataclass(frozen=True)
class SessionClaim:
    kind: SubjectKind
    subject: str


class InvalidSessionToken(Exception):
    pass


class SessionIssuer:
    """Mints and verifies session tokens with one process-wide secret.

    Stateless: there is no server-side revocation list.
    """

    def __init__(self, secret: str, ttl: timedelta = SESSION_TTL):
        if not secret:
            raise ValueError("Session secret must not be empty")
        self._secret = secret
        self.ttl = ttl

    def issue(self, subject: str, kind: SubjectKind, *, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            kind.value: subject,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> SessionClaim:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidSessionToken(str(exc)) from exc

        present = [kind for kind in SubjectKind if claims.get(kind.value)]
        if len(present) != 1:
            raise InvalidSessionToken("token must carry exactly one subject claim")
        kind = present[0]
        return SessionClaim(kind=kind, subject=str(claims[kind.value]))

    def revoke(self) -> None:
        """Nothing to do server side; the caller discards the cookie."""
        logger.debug("[SessionIssuer] Session revoked by client")


__all__ = [
    "SESSION_COOKIE",
    "SESSION_TTL",
    "SubjectKind",
    "SessionClaim",
    "InvalidSessionToken",
    "SessionIssuer",
]
