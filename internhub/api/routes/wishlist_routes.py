"""
Wishlist Routes

GET /wishlist - Saved postings (filters, pagination) with deadline info
POST /wishlist - Save a posting
GET /wishlist/stats - Counts by category/priority, due reminders, closing soon
GET /wishlist/reminders - Reminders that have come due
PUT /wishlist/bulk - Update several items at once
PUT /wishlist/{item_id} - Update one item
DELETE /wishlist/{item_id} - Remove an item
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from internhub.db.postgres import get_db_session, fetch_one
from internhub.core.auth import get_current_student
from internhub.services.wishlist_service import WishlistService, decorate
from internhub.utils.pagination import paginate
from internhub.schemas.schemas import (
    MessageResponse, Priority, WishlistApplicationStatus, WishlistBulkRequest, WishlistBulkResult,
    WishlistCategory, WishlistCreate, WishlistItemResponse, WishlistListResponse,
    WishlistStatsResponse, WishlistUpdate
)

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])


def adjust_saves(internship_id: int, delta: int) -> None:
    """Move the posting's save counter by one, never below zero."""
    if delta > 0:
        sql = "UPDATE internships SET saves = saves + 1 WHERE internship_id = :iid"
    else:
        sql = "UPDATE internships SET saves = CASE WHEN saves > 0 THEN saves - 1 ELSE 0 END WHERE internship_id = :iid"
    with get_db_session() as db:
        db.execute(text(sql), {"iid": internship_id})


@router.get("", response_model=WishlistListResponse)
async def list_wishlist(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    category: Optional[WishlistCategory] = Query(None),
    priority: Optional[Priority] = Query(None),
    application_status: Optional[WishlistApplicationStatus] = Query(None),
    student: dict = Depends(get_current_student)
):
    """Saved postings, high priority first, then newest."""
    items, total = WishlistService().list(
        student["user_id"],
        category=category.value if category else None,
        priority=priority.value if priority else None,
        application_status=application_status.value if application_status else None,
        page=page,
        limit=limit
    )
    return WishlistListResponse(
        items=[WishlistItemResponse(**item) for item in decorate(items)],
        pagination=paginate(page, limit, total)
    )


@router.post("", response_model=WishlistItemResponse, status_code=201)
async def add_to_wishlist(data: WishlistCreate, student: dict = Depends(get_current_student)):
    """Save a posting. Re-adding a removed posting restores the old item."""
    if not fetch_one("SELECT internship_id FROM internships WHERE internship_id = :iid", {"iid": data.internship_id}):
        raise HTTPException(status_code=404, detail="Internship not found")

    wishlist = WishlistService()
    existing = wishlist.find_item(student["user_id"], data.internship_id)
    if existing and existing["is_active"]:
        raise HTTPException(status_code=400, detail="Internship is already in your wishlist")

    fields = data.model_dump(exclude={"internship_id"}, mode="json")
    item = wishlist.add(student["user_id"], data.internship_id, **fields)
    adjust_saves(data.internship_id, 1)

    return WishlistItemResponse(**decorate([item])[0])


@router.get("/stats", response_model=WishlistStatsResponse)
async def wishlist_stats(student: dict = Depends(get_current_student)):
    return WishlistStatsResponse(**WishlistService().stats(student["user_id"]))


@router.get("/reminders", response_model=List[WishlistItemResponse])
async def due_reminders(student: dict = Depends(get_current_student)):
    """Items whose reminder date has passed, oldest reminder first."""
    items = WishlistService().due_reminders(user_id=student["user_id"])
    return [WishlistItemResponse(**item) for item in decorate(items)]


@router.put("/bulk", response_model=List[WishlistBulkResult])
async def bulk_update(request: WishlistBulkRequest, student: dict = Depends(get_current_student)):
    """Apply updates item by item. Each item reports its own success."""
    items = [
        {"id": entry.id, "updates": entry.updates.model_dump(exclude_unset=True, mode="json")}
        for entry in request.items
    ]
    results = WishlistService().bulk_update(student["user_id"], items)
    return [WishlistBulkResult(**r) for r in results]


@router.put("/{item_id}", response_model=WishlistItemResponse)
async def update_item(item_id: str, data: WishlistUpdate, student: dict = Depends(get_current_student)):
    """Partial update. Marking an item applied also moves it to the applied category."""
    changes = data.model_dump(exclude_unset=True, mode="json")
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    item = WishlistService().update(student["user_id"], item_id, changes)
    if item is None:
        raise HTTPException(status_code=404, detail="Wishlist item not found")

    return WishlistItemResponse(**decorate([item])[0])


@router.delete("/{item_id}", response_model=MessageResponse)
async def remove_item(item_id: str, student: dict = Depends(get_current_student)):
    item = WishlistService().remove(student["user_id"], item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Wishlist item not found")

    adjust_saves(item["internship_id"], -1)
    return MessageResponse(message="Removed from wishlist")
