"""
Notification APIs (All Authenticated Users).
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from database.models import User
from auth.dependencies import get_context, get_current_user
from core.context import AppContext


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    id: str
    level: str
    title: str
    description: str
    createdAt: str


class NotificationListResponse(BaseModel):
    data: List[NotificationResponse]
    total: int


@router.get("", response_model=NotificationListResponse)
async def drain_notifications(
    current_user: User = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """
    Return and clear the caller's pending notifications, oldest first.
    Clients connected to /ws/notifications receive them live instead.
    """
    pending = [n.to_dict() for n in ctx.notifications.drain(current_user.id)]
    return NotificationListResponse(data=pending, total=len(pending))
