"""Banner slides for the landing page."""
from fastapi import APIRouter, Depends

from services.database import rows_to_dicts

from ..context import AppContext
from ..deps import get_context

router = APIRouter(tags=["highlights"])


@router.get("/highlights")
async def list_highlights(ctx: AppContext = Depends(get_context)):
    rows = await ctx.db.fetch_all(
        "SELECT id, title, description, image, created_at FROM slides ORDER BY created_at"
    )
    return rows_to_dicts(rows)
