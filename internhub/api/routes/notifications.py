"""
Notification API Endpoints

GET    /api/v1/notifications                 - Caller's inbox
GET    /api/v1/notifications/unread-count    - Unread badge count
PUT    /api/v1/notifications/read-all        - Mark every notification read
PUT    /api/v1/notifications/{id}/read       - Mark one notification read
DELETE /api/v1/notifications/{id}            - Delete one notification
POST   /api/v1/notifications/send-reminders  - Teacher triggers expiring-internship reminders
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from internhub.api.auth import Caller, get_current_caller, require_role
from internhub.api.schemas import MessageResponse, NotificationOut, Pagination
from internhub.config import REMINDER_HORIZON_DAYS
from internhub.models.user import Role
from internhub.services.internship_service import get_internship_service
from internhub.services.notification_service import get_notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationListResponse(BaseModel):
    data: List[NotificationOut]
    pagination: Pagination
    unread_count: int


class NotificationResponse(BaseModel):
    data: NotificationOut


class UnreadCountResponse(BaseModel):
    unread_count: int


class ReminderResult(BaseModel):
    internships_checked: int
    notifications_sent: int


class ReminderResponse(BaseModel):
    data: ReminderResult


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    is_read: Optional[bool] = Query(None, description="Filter by read state"),
    type: Optional[str] = Query(None, description="Filter by notification type"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_current_caller),
):
    result = await get_notification_service().list_notifications(
        caller.user_id, is_read=is_read, type=type, limit=limit, offset=offset
    )
    return NotificationListResponse(
        data=[NotificationOut.model_validate(notification) for notification in result["notifications"]],
        pagination=Pagination(**result["pagination"]),
        unread_count=result["unread_count"],
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(caller: Caller = Depends(get_current_caller)):
    count = await get_notification_service().unread_count(caller.user_id)
    return UnreadCountResponse(unread_count=count)


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_as_read(caller: Caller = Depends(get_current_caller)):
    updated = await get_notification_service().mark_all_as_read(caller.user_id)
    return MessageResponse(message="All notifications marked as read", data={"updated": updated})


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: int = Path(..., description="Notification id"),
    caller: Caller = Depends(get_current_caller),
):
    """
    Mark one of the caller's notifications as read.

    Raises:
        403: Notification belongs to another user
        404: Notification not found
    """
    notification = await get_notification_service().mark_as_read(notification_id, caller.user_id)
    return NotificationResponse(data=NotificationOut.model_validate(notification))


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: int = Path(..., description="Notification id"),
    caller: Caller = Depends(get_current_caller),
):
    await get_notification_service().delete_notification(notification_id, caller.user_id)
    return MessageResponse(message="Notification deleted", data={"id": notification_id})


@router.post("/send-reminders", response_model=ReminderResponse)
async def send_reminders(
    as_of: Optional[date] = Query(None, description="Reference date (default today)"),
    horizon_days: int = Query(REMINDER_HORIZON_DAYS, ge=0, description="Look-ahead window in days"),
    caller: Caller = Depends(require_role(Role.TEACHER)),
):
    """
    Remind students and teachers of internships ending within the reminder window.

    Returns:
        internships_checked and notifications_sent
    """
    summary = await get_internship_service().remind(as_of=as_of, horizon_days=horizon_days)
    return ReminderResponse(
        data=ReminderResult(internships_checked=summary["checked"], notifications_sent=summary["sent"])
    )
