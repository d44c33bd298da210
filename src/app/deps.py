"""FastAPI dependencies: application context and the request principal."""
from fastapi import Depends, Request

from auth.resolver import extract_credentials
from services.identifiers import RecordRef, parse_record_ref
from services.models import User

from .context import AppContext


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def require_principal(
    request: Request,
    ctx: AppContext = Depends(get_context),
) -> User:
    """Resolve the authenticated user or fail with Unauthenticated/PrincipalNotFound."""
    credentials = extract_credentials(request.headers, request.cookies)
    return await ctx.identity.resolve(credentials)


def item_ref(id: str) -> RecordRef:
    """Path ``{id}`` parsed once into a canonical or legacy identifier."""
    return parse_record_ref(id)
