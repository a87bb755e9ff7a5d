# conduct_scoring/api/v1/endpoints/users.py
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from conduct_scoring.schemas.user import ProfileUpdate, UserPublic
from conduct_scoring.models.user import User
from conduct_scoring.core.security import get_current_user
from conduct_scoring.db.session import get_db
from conduct_scoring.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPublic)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserPublic)
def update_me(
    obj_in: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return user_service.update_profile(db, current_user, obj_in)


@router.post("/me/avatar", response_model=UserPublic)
def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return user_service.set_avatar(
        db,
        current_user,
        filename=file.filename,
        content_type=file.content_type,
        content=file.file.read(),
    )
