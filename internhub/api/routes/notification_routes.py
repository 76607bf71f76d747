"""
Notification Routes

GET /notifications - Own notifications (filters, pagination, unread count)
GET /notifications/stats - Totals by type and priority
GET /notifications/preferences - Notification preferences
PUT /notifications/preferences - Update preferences
PUT /notifications/read-all - Mark everything read
PUT /notifications/bulk-read - Mark a list of notifications read
DELETE /notifications/bulk - Delete a list of notifications
PUT /notifications/{notification_id}/read - Mark one read
DELETE /notifications/{notification_id} - Delete one
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from internhub.core.auth import get_current_user
from internhub.services.notification_service import NotificationService, PreferenceService
from internhub.services.realtime import manager
from internhub.utils.pagination import paginate
from internhub.schemas.schemas import (
    CountResponse, MessageResponse, NotificationIdsRequest, NotificationListResponse,
    NotificationPreferences, NotificationPreferencesUpdate, NotificationResponse,
    NotificationStatsResponse, NotificationType, Priority
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    unread_only: bool = Query(False),
    type: Optional[NotificationType] = Query(None),
    priority: Optional[Priority] = Query(None),
    user: dict = Depends(get_current_user)
):
    """Own notifications, highest priority first, then newest."""
    notifications, total, unread = NotificationService().list_for_user(
        user["user_id"],
        unread_only=unread_only,
        type=type.value if type else None,
        priority=priority.value if priority else None,
        page=page,
        limit=limit
    )
    return NotificationListResponse(
        notifications=[NotificationResponse(**n) for n in notifications],
        unread_count=unread,
        pagination=paginate(page, limit, total)
    )


@router.get("/stats", response_model=NotificationStatsResponse)
async def notification_stats(user: dict = Depends(get_current_user)):
    return NotificationStatsResponse(**NotificationService().stats(user["user_id"]))


@router.get("/preferences", response_model=NotificationPreferences)
async def get_preferences(user: dict = Depends(get_current_user)):
    return NotificationPreferences(**PreferenceService().get(user["user_id"]))


@router.put("/preferences", response_model=NotificationPreferences)
async def update_preferences(data: NotificationPreferencesUpdate, user: dict = Depends(get_current_user)):
    """Update only the preferences that are sent."""
    changes = data.model_dump(exclude_unset=True, mode="json")
    return NotificationPreferences(**PreferenceService().update(user["user_id"], changes))


@router.put("/read-all", response_model=CountResponse)
async def mark_all_read(user: dict = Depends(get_current_user)):
    count = NotificationService().mark_all_read(user["user_id"])
    await manager.emit_to_user(user["user_id"], "notifications:unread_count", {"unread_count": 0})
    return CountResponse(message="All notifications marked as read", count=count)


@router.put("/bulk-read", response_model=CountResponse)
async def bulk_mark_read(request: NotificationIdsRequest, user: dict = Depends(get_current_user)):
    service = NotificationService()
    count = service.mark_many_read(user["user_id"], request.notification_ids)
    await manager.emit_to_user(
        user["user_id"], "notifications:unread_count", {"unread_count": service.unread_count(user["user_id"])}
    )
    return CountResponse(message=f"{count} notifications marked as read", count=count)


@router.delete("/bulk", response_model=CountResponse)
async def bulk_delete(request: NotificationIdsRequest, user: dict = Depends(get_current_user)):
    count = NotificationService().delete_many(user["user_id"], request.notification_ids)
    return CountResponse(message=f"{count} notifications deleted", count=count)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, user: dict = Depends(get_current_user)):
    notification = NotificationService().mark_read(user["user_id"], notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return NotificationResponse(**notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(notification_id: str, user: dict = Depends(get_current_user)):
    if not NotificationService().delete(user["user_id"], notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return MessageResponse(message="Notification deleted")
