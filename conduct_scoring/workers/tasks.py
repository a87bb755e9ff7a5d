"""
Notification Tasks for Worker
These tasks are executed by RQ workers to deliver notifications asynchronously
"""

import logging
from conduct_scoring.db.session import SessionLocal
from conduct_scoring.schemas.notification import NotificationPayload
from conduct_scoring.services import notification_service

logger = logging.getLogger(__name__)


def notification_task(payload: dict) -> dict:
    """
    Worker task to fan a notification out to its recipients.

    Args:
        payload: NotificationPayload as a plain dict (RQ pickles job args)

    Returns:
        Dictionary with the delivery summary
    """
    db = SessionLocal()
    try:
        notification = NotificationPayload.model_validate(payload)
        logger.info(f"Delivering notification '{notification.title}'")

        count = notification_service.deliver(db, notification)

        logger.info(
            f"Delivered notification '{notification.title}' to {count} recipient(s)"
        )
        return {
            "status": "success",
            "title": notification.title,
            "recipient_count": count,
        }

    except Exception as e:
        logger.error(f"Notification delivery failed: {e}", exc_info=True)
        db.rollback()
        raise

    finally:
        db.close()
