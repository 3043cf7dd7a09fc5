from typing import List, Optional
from uuid import UUID
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from handyhive.models.notification_model import Notification
from handyhive.logger import get_logger

logger = get_logger(__name__)


class NotificationDispatcher:
    """Best-effort delivery of in-app notifications.

    ``notify`` never raises: a failed delivery is logged and reported by the
    return value so callers on a success path can ignore it.
    """

    def notify(
        self,
        db: Session,
        user_id: str,
        title: str,
        body: str,
        category: str = "info",
        deep_link: Optional[str] = None,
    ) -> bool:
        try:
            db.add(Notification(
                user_id=str(user_id),
                title=title,
                message=body,
                type=category,
                action_url=deep_link,
            ))
            db.commit()
            logger.info(f"Notification '{title}' sent to user {user_id}")
            return True
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating notification for user {user_id}: {str(e)}")
            return False


class NotificationCRUD:
    @staticmethod
    def get_notifications(
            db: Session, user_id: UUID, unread_only: bool = False, skip: int = 0, limit: int = 50
    ) -> List[Notification]:
        query = db.query(Notification).filter(Notification.user_id == str(user_id))
        if unread_only:
            query = query.filter(Notification.is_read == False)
        return query.order_by(Notification.created_at.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def unread_count(db: Session, user_id: UUID) -> int:
        return db.query(Notification).filter(
            Notification.user_id == str(user_id), Notification.is_read == False
        ).count()

    @staticmethod
    def mark_as_read(db: Session, notification_id: UUID, user_id: UUID) -> Notification:
        notification = db.query(Notification).filter(Notification.id == str(notification_id)).first()
        if not notification or notification.user_id != str(user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
            )
        notification.is_read = True
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_as_read(db: Session, user_id: UUID) -> int:
        updated = db.query(Notification).filter(
            Notification.user_id == str(user_id), Notification.is_read == False
        ).update({Notification.is_read: True}, synchronize_session=False)
        db.commit()
        return updated


notification_dispatcher = NotificationDispatcher()
notification_crud = NotificationCRUD()
