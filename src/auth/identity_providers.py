"""
External identity verification.
===============================

An external identity credential is a bearer token minted by a third-party
provider. Each provider maps it to an ``ExternalIdentity`` or raises
``ExternalIdentityError``; the caller decides what a failure means.

Providers:
- firebase (default): firebase-admin ``auth.verify_id_token``
- supabase: service-role client ``auth.get_user``
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials as firebase_credentials
from firebase_admin import exceptions as firebase_exceptions
from supabase import Client, create_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExternalIdentity:
    uid: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


class ExternalIdentityError(Exception):
    pass


class ExternalIdentityVerifier(Protocol):
    async def verify(self, token: str) -> ExternalIdentity:
        ...


class FirebaseVerifier:
    """Verifies Firebase ID tokens with a service-account initialized app."""

    def __init__(
        self,
        project_id: Optional[str],
        client_email: Optional[str],
        private_key: Optional[str],
    ):
        self._project_id = project_id
        self._client_email = client_email
        self._private_key = private_key
        self._app: Optional[firebase_admin.App] = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            if not (self._project_id and self._client_email and self._private_key):
                raise ExternalIdentityError("Firebase credentials are not configured")
            cert = firebase_credentials.Certificate({
                "type": "service_account",
                "project_id": self._project_id,
                "client_email": self._client_email,
                "private_key": self._private_key.replace("\\n", "\n"),
                "token_uri": "https://oauth2.googleapis.com/token",
            })
            self._app = firebase_admin.initialize_app(cert)
            logger.info(f"[FirebaseVerifier] Initialized app for project {self._project_id}")
        return self._app

    async def verify(self, token: str) -> ExternalIdentity:
        app = self._get_app()
        try:
            decoded = await asyncio.to_thread(firebase_auth.verify_id_token, token, app)
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise ExternalIdentityError(str(exc)) from exc

        email = decoded.get("email")
        if not email:
            raise ExternalIdentityError("ID token has no email claim")

        return ExternalIdentity(
            uid=decoded["uid"],
            email=email,
            name=decoded.get("name"),
            picture=decoded.get("picture"),
        )


@lru_cache(maxsize=1)
def supabase_admin(url: str, key: str) -> Client:
    """Service-role Supabase client, cached per process."""
    if not url or not key:
        raise ExternalIdentityError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the supabase identity provider"
        )
    return create_client(url, key)


class SupabaseVerifier:
    """Verifies Supabase access tokens by asking the auth server for the user."""

    def __init__(self, url: Optional[str], service_role_key: Optional[str]):
        self._url = url or ""
        self._key = service_role_key or ""

    async def verify(self, token: str) -> ExternalIdentity:
        client = supabase_admin(self._url, self._key)
        try:
            response = await asyncio.to_thread(client.auth.get_user, token)
        except Exception as exc:
            raise ExternalIdentityError(str(exc)) from exc

        user = getattr(response, "user", None)
        if user is None or not user.email:
            raise ExternalIdentityError("Supabase token did not resolve to a user with an email")

        metadata = user.user_metadata or {}
        return ExternalIdentity(
            uid=user.id,
            email=user.email,
            name=metadata.get("full_name") or metadata.get("name"),
            picture=metadata.get("avatar_url") or metadata.get("picture"),
        )


def build_verifier(settings) -> ExternalIdentityVerifier:
    if settings.identity_provider == "supabase":
        return SupabaseVerifier(settings.supabase_url, settings.supabase_service_role_key)
    if settings.identity_provider == "firebase":
        return FirebaseVerifier(
            settings.firebase_project_id,
            settings.firebase_client_email,
            settings.firebase_private_key,
        )
    raise ValueError(f"Unknown IDENTITY_PROVIDER: {settings.identity_provider}")


__all__ = [
    "ExternalIdentity",
    "ExternalIdentityError",
    "ExternalIdentityVerifier",
    "FirebaseVerifier",
    "SupabaseVerifier",
    "build_verifier",
]
