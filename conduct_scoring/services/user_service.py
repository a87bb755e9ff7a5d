# conduct_scoring/services/user_service.py
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from conduct_scoring.core.errors import ValidationError
from conduct_scoring.models.user import User
from conduct_scoring.schemas.user import ProfileUpdate
from conduct_scoring.services import evidence_store

logger = logging.getLogger(__name__)


def update_profile(db: Session, user: User, obj_in: ProfileUpdate) -> User:
    changes = obj_in.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("nothing to update")

    if "full_name" in changes:
        full_name = (changes["full_name"] or "").strip()
        if not full_name:
            raise ValidationError("full_name must not be blank")
        user.full_name = full_name
    # Blank optional fields clear the stored value
    for field in ("phone", "class_id"):
        if field in changes:
            setattr(user, field, (changes[field] or "").strip() or None)

    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"User {user.id} updated profile fields {sorted(changes)}")
    return user


def set_avatar(
    db: Session,
    user: User,
    *,
    filename: Optional[str],
    content_type: Optional[str],
    content: bytes,
) -> User:
    """Store a new avatar image and drop the one it replaces."""
    file_ref = evidence_store.save_upload(
        user_id=user.id,
        kind="avatar",
        filename=filename,
        content_type=content_type,
        content=content,
    )
    previous = user.avatar

    user.avatar = file_ref
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        evidence_store.delete_upload(file_ref)
        raise
    db.refresh(user)

    if previous:
        evidence_store.delete_upload(previous)
    logger.info(f"User {user.id} avatar set to {file_ref}")
    return user
