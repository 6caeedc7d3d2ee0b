"""
Admin notifications.

``notify_admins`` is the side channel used by the busy slot and session
stores: it runs after the parent write has been committed and never raises.
The remaining functions back the admin inbox.
"""
from __future__ import annotations

import logging
from typing import List

from sqlmodel import Session, select

from trainer_timetable.errors import NotFoundError, ValidationError
from trainer_timetable.models import Notification, UserRole

logger = logging.getLogger(__name__)


def notify_admins(session: Session, type: str, message: str) -> None:
    try:
        notification = Notification(
            type=type,
            message=message,
            recipient_role=UserRole.admin,
            read=False,
        )
        session.add(notification)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Failed to write %s notification for admins", type)


def send_admin_notification(session: Session, type: str, message: str) -> Notification:
    if not type or not message:
        raise ValidationError("Type and message are required")
    notification = Notification(type=type, message=message, recipient_role=UserRole.admin)
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


def list_admin_notifications(session: Session, limit: int = 50) -> List[Notification]:
    return list(
        session.exec(
            select(Notification)
            .where(Notification.recipient_role == UserRole.admin)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).all()
    )


def mark_notification_read(session: Session, notification_id: int) -> Notification:
    notification = session.get(Notification, notification_id)
    if not notification:
        raise NotFoundError("Notification not found")
    notification.read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification
