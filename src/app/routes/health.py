import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..context import AppContext
from ..deps import get_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health/db")
async def health_db(ctx: AppContext = Depends(get_context)):
    """Verify the backing store answers queries."""
    try:
        await ctx.db.fetch_val("SELECT 1")
        return JSONResponse({"ok": True})
    except Exception as e:
        logger.error(f"[Health] Database check failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": str(e)}
        )
