"""Recovery record endpoints."""
from fastapi import APIRouter, Depends

from services.models import User
from services.schemas import RecoveryUpdate

from ..context import AppContext
from ..deps import get_context, require_principal

router = APIRouter(prefix="/recoveries", tags=["recoveries"])


@router.get("")
async def list_recoveries(
    principal: User = Depends(require_principal),
    ctx: AppContext = Depends(get_context),
):
    """Recoveries where the principal is the claimant or the original owner."""
    return await ctx.recoveries.list_for(principal)


@router.patch("/{recovery_id}")
async def update_recovery(
    recovery_id: str,
    payload: RecoveryUpdate,
    principal: User = Depends(require_principal),
    ctx: AppContext = Depends(get_context),
):
    """Update the supplied fields of a recovery the principal is party to."""
    recovery = await ctx.recoveries.update_recovery(principal, recovery_id, payload)
    return {"message": "Recovery updated successfully", "recovery": recovery.to_api()}
