"""User endpoints: profile, external login and logout."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from auth.identity_providers import ExternalIdentityError
from auth.session_tokens import SESSION_COOKIE, SubjectKind
from services.errors import Unauthenticated, ValidationError
from services.models import User

from ..context import AppContext
from ..deps import get_context, require_principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class ExternalLogin(BaseModel):
    idToken: Optional[str] = None
    name: Optional[str] = None
    photoURL: Optional[str] = None


def _cookie_options(ctx: AppContext) -> dict:
    return {
        "httponly": True,
        "secure": ctx.settings.is_production,
        "samesite": "lax",
    }


@router.get("/profile")
async def get_profile(principal: User = Depends(require_principal)):
    """Return the resolved principal."""
    return principal.to_api()


@router.post("/firebase-login")
async def external_login(
    payload: ExternalLogin,
    response: Response,
    ctx: AppContext = Depends(get_context),
):
    """Verify an external ID token, upsert the user and set the session cookie."""
    if not payload.idToken:
        raise ValidationError("No ID token provided")

    try:
        identity = await ctx.verifier.verify(payload.idToken)
    except ExternalIdentityError as exc:
        logger.warning(f"[Users] External login rejected: {exc}")
        raise Unauthenticated("Invalid Firebase ID token")

    user, created = await ctx.users.get_or_provision(
        identity,
        default_name="User",
        name=payload.name,
        photo_url=payload.photoURL,
    )
    if not created:
        user = await ctx.users.apply_login_profile(
            user,
            name=payload.name,
            photo_url=payload.photoURL,
            picture=identity.picture,
        )

    if user.uid:
        token = ctx.sessions.issue(user.uid, SubjectKind.EXTERNAL_SUBJECT_ID)
    else:
        token = ctx.sessions.issue(user.id, SubjectKind.INTERNAL_ID)

    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=int(ctx.sessions.ttl.total_seconds()),
        **_cookie_options(ctx),
    )
    return {"message": "Logged in with Firebase", "user": user.to_api()}


@router.post("/logout")
async def logout(response: Response, ctx: AppContext = Depends(get_context)):
    """Clear the session cookie."""
    ctx.sessions.revoke()
    response.delete_cookie(SESSION_COOKIE, **_cookie_options(ctx))
    return {"message": "Logged out"}
