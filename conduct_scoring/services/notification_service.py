# conduct_scoring/services/notification_service.py
import logging
from typing import Iterable, List, Optional

from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from conduct_scoring.core.errors import ValidationError
from conduct_scoring.models.notification import Notification
from conduct_scoring.models.user import User
from conduct_scoring.schemas.notification import NotificationPayload
from conduct_scoring.workers import queue

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("info", "success", "warning", "error")
TARGET_ROLES = ("student", "teacher", "all")


def build_notification(
    *,
    title: str,
    message: str,
    type: str = "info",
    target_role: str = "all",
    sender_id: Optional[int] = None,
    class_id: Optional[str] = None,
    target_user_ids: Optional[Iterable[int]] = None,
    action_url: Optional[str] = None,
) -> NotificationPayload:
    if not title or not title.strip():
        raise ValidationError("notification title is required")
    if not message or not message.strip():
        raise ValidationError("notification message is required")
    if type not in NOTIFICATION_TYPES:
        raise ValidationError(f"invalid notification type {type!r}")
    if target_role not in TARGET_ROLES:
        raise ValidationError(f"invalid target role {target_role!r}")

    return NotificationPayload(
        title=title.strip(),
        message=message.strip(),
        type=type,
        target_role=target_role,
        sender_id=sender_id,
        class_id=class_id,
        target_user_ids=list(target_user_ids or []),
        action_url=action_url,
    )


def resolve_recipients(db: Session, payload: NotificationPayload) -> List[User]:
    """Explicit user ids win; otherwise everyone matching role and class."""
    query = db.query(User)
    if payload.target_user_ids:
        return query.filter(User.id.in_(payload.target_user_ids)).all()

    if payload.target_role != "all":
        query = query.filter(User.role == payload.target_role)
    if payload.class_id:
        query = query.filter(User.class_id == payload.class_id)
    return query.all()


def deliver(db: Session, payload: NotificationPayload) -> int:
    """Materialise one notification row per recipient. Returns the recipient count."""
    recipients = resolve_recipients(db, payload)
    for user in recipients:
        db.add(
            Notification(
                recipient_id=user.id,
                sender_id=payload.sender_id,
                title=payload.title,
                message=payload.message,
                type=payload.type,
                target_role=payload.target_role,
                class_id=payload.class_id,
                action_url=payload.action_url,
            )
        )
    db.commit()
    return len(recipients)


def dispatch(payload: NotificationPayload) -> Optional[str]:
    """
    Fire-and-forget: queue the payload for the worker.

    A notification that cannot be queued never fails the scoring operation
    that triggered it; the outage is logged instead.
    """
    try:
        return queue.enqueue_notification_task(payload.model_dump())
    except RedisError as e:
        logger.warning(f"Could not queue notification '{payload.title}': {e}")
        return None


def list_for_user(
    db: Session,
    *,
    user: User,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 100,
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.recipient_id == user.id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def unread_count(db: Session, *, user: User) -> int:
    return (
        db.query(Notification)
        .filter(Notification.recipient_id == user.id, Notification.read.is_(False))
        .count()
    )


def mark_read(db: Session, *, user: User, notification_id: int) -> Optional[Notification]:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.recipient_id == user.id)
        .first()
    )
    if notification is None:
        return None
    notification.read = True
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, *, user: User) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.recipient_id == user.id, Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return updated
