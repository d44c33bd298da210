"""Inventory endpoints: lost/found item posts and their recovery."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from services.errors import ValidationError
from services.identifiers import RecordRef
from services.models import User
from services.schemas import ItemCreate, ItemUpdate, RecoveryClaim

from ..context import AppContext
from ..deps import get_context, item_ref, require_principal

router = APIRouter(tags=["inventory"])


@router.post("/inventory", status_code=201)
async def create_item(
    payload: ItemCreate,
    principal: User = Depends(require_principal),
    ctx: AppContext = Depends(get_context),
):
    """Post a lost or found item; the principal becomes its contact."""
    item_id = await ctx.items.create(principal, payload)
    return {"message": "Item added successfully", "itemId": item_id}


@router.get("/inventory")
async def list_items(
    type: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    search: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
):
    """List items, newest first, narrowed by the optional filters."""
    items = await ctx.items.list(
        post_type=type,
        status=status,
        category=category,
        location=location,
        search=search,
    )
    return [item.to_api() for item in items]


@router.get("/inventory/{id}")
async def get_item(ref: RecordRef = Depends(item_ref), ctx: AppContext = Depends(get_context)):
    """Fetch one item by canonical or legacy id."""
    item = await ctx.items.lookup(ref)
    return item.to_api()


@router.patch("/inventory/{id}")
async def update_item(
    payload: ItemUpdate,
    ref: RecordRef = Depends(item_ref),
    principal: User = Depends(require_principal),
    ctx: AppContext = Depends(get_context),
):
    """Update allowlisted fields of an owned item."""
    modified = await ctx.items.update(principal, ref, payload)
    return {"message": "Item updated successfully", "modifiedCount": modified}


@router.delete("/inventory/{id}")
async def delete_item(
    ref: RecordRef = Depends(item_ref),
    principal: User = Depends(require_principal),
    ctx: AppContext = Depends(get_context),
):
    """Delete an owned item together with its recovery records."""
    await ctx.recoveries.delete_item(principal, ref)
    return {"message": "Item deleted successfully"}


@router.post("/inventory/{id}/recover")
async def recover_item(
    payload: RecoveryClaim,
    ref: RecordRef = Depends(item_ref),
    principal: User = Depends(require_principal),
    ctx: AppContext = Depends(get_context),
):
    """Claim someone else's item and mark it recovered."""
    recovery = await ctx.recoveries.recover(principal, ref, payload)
    return {"message": "Item recovery recorded successfully", "recovery": recovery.to_api()}


@router.get("/my-items")
async def list_my_items(
    email: Optional[str] = Query(None),
    principal: User = Depends(require_principal),
    ctx: AppContext = Depends(get_context),
):
    """Items posted under ``email``. Not cross-checked against the principal."""
    if not email:
        raise ValidationError("Email is required")

    items = await ctx.items.list_by_email(email)
    return {
        "emailUsed": email,
        "itemsFound": len(items),
        "items": [item.to_api() for item in items],
    }
