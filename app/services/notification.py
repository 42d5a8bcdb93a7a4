from typing import Optional

from sqlalchemy.orm import Session
from app.models.notification import Notification


class NotificationService:
    @staticmethod
    def create_notification(
        db: Session,
        user_id: int,
        title: str,
        message: str,
        type: str = "info",
        link: Optional[str] = None,
        notifiable_type: Optional[str] = None,
        notifiable_id: Optional[int] = None,
    ) -> Notification:
        """
        Internal utility for creating notifications.
        Added to the caller's transaction; the caller commits.
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            link=link,
            notifiable_type=notifiable_type,
            notifiable_id=notifiable_id,
        )
        db.add(notification)
        db.flush()
        return notification

    @staticmethod
    def notify_user(
        db: Session,
        user_id: Optional[int],
        title: str,
        message: str,
        type: str = "info",
        link: Optional[str] = None,
        notifiable_type: Optional[str] = None,
        notifiable_id: Optional[int] = None,
    ) -> Optional[Notification]:
        """
        Standardized notification trigger. Employees without an account get nothing.
        """
        if user_id is None:
            return None
        return NotificationService.create_notification(
            db, user_id, title, message, type, link, notifiable_type, notifiable_id
        )
