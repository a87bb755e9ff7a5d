# conduct_scoring/api/v1/endpoints/notifications.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from conduct_scoring.core.security import get_current_teacher, get_current_user
from conduct_scoring.db.session import get_db
from conduct_scoring.models.user import User
from conduct_scoring.schemas.notification import (
    NotificationCreate,
    NotificationList,
    NotificationPublic,
)
from conduct_scoring.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationList)
def list_my_notifications(
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items = notification_service.list_for_user(
        db, user=current_user, unread_only=unread_only, skip=skip, limit=limit
    )
    return NotificationList(
        data=[NotificationPublic.model_validate(n) for n in items],
        unread_count=notification_service.unread_count(db, user=current_user),
    )


@router.post("", status_code=status.HTTP_202_ACCEPTED)
def send_notification(
    obj_in: NotificationCreate,
    current_teacher: User = Depends(get_current_teacher),
):
    """
    Teacher broadcast; delivered to recipients by the worker.
    """
    payload = notification_service.build_notification(
        title=obj_in.title,
        message=obj_in.message,
        type=obj_in.type,
        target_role=obj_in.target_role,
        sender_id=current_teacher.id,
        class_id=obj_in.class_id,
        target_user_ids=obj_in.target_user_ids,
        action_url=obj_in.action_url,
    )
    job_id = notification_service.dispatch(payload)
    return {"queued": job_id is not None, "job_id": job_id, "data": payload}


@router.put("/read-all")
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated = notification_service.mark_all_read(db, user=current_user)
    return {"updated": updated}


@router.put("/{notification_id}/read", response_model=NotificationPublic)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notification = notification_service.mark_read(
        db, user=current_user, notification_id=notification_id
    )
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification
