from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
from handyhive.database import get_db
from handyhive.models.user_model import User
from handyhive.schemas.notification_schema import NotificationResponse, UnreadCount
from handyhive.security.auth import get_current_active_user
from handyhive.services.notification_service import notification_crud
from handyhive.logger import get_logger

notification_router = APIRouter()
logger = get_logger(__name__)


@notification_router.get(
    "/notifications", response_model=List[NotificationResponse], status_code=status.HTTP_200_OK
)
def get_my_notifications(
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Newest first"""
    notifications = notification_crud.get_notifications(
        db, current_user.id, unread_only=unread_only, skip=skip, limit=limit
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@notification_router.get(
    "/notifications/unread-count", response_model=UnreadCount, status_code=status.HTTP_200_OK
)
def get_unread_count(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    return UnreadCount(unread=notification_crud.unread_count(db, current_user.id))


@notification_router.patch(
    "/notifications/read-all", response_model=UnreadCount, status_code=status.HTTP_200_OK
)
def mark_all_read(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    updated = notification_crud.mark_all_as_read(db, current_user.id)
    logger.info(f"User {current_user.email} marked {updated} notifications read")
    return UnreadCount(unread=0)


@notification_router.patch(
    "/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    status_code=status.HTTP_200_OK,
)
def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    notification = notification_crud.mark_as_read(db, notification_id, current_user.id)
    return NotificationResponse.model_validate(notification)
