# conduct_scoring/api/v1/endpoints/students.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from conduct_scoring.api.v1.endpoints.scores import csv_response
from conduct_scoring.core.security import get_current_teacher
from conduct_scoring.db.session import get_db
from conduct_scoring.models.user import User
from conduct_scoring.schemas.user import StudentCreate, StudentCreated, StudentSummary, UserPublic
from conduct_scoring.services import report_service, student_service

router = APIRouter(prefix="/students", tags=["students"])


@router.get("", response_model=List[StudentSummary])
def list_students(
    class_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    return student_service.list_students(db, class_id=class_id, skip=skip, limit=limit)


@router.post("", response_model=StudentCreated, status_code=status.HTTP_201_CREATED)
def add_student(
    obj_in: StudentCreate,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    """
    Add a student account to a class. The initial password is returned once.
    """
    if db.query(User).filter(User.email == obj_in.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Student already exists in system",
        )
    if obj_in.student_code:
        taken = db.query(User).filter(User.student_code == obj_in.student_code).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Student code already registered",
            )

    student, password = student_service.add_student(db, obj_in)
    return StudentCreated(
        **UserPublic.model_validate(student).model_dump(),
        temporary_password=password,
    )


@router.get("/export.csv")
def export_students_csv(
    class_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    students = student_service.list_students(db, class_id=class_id, limit=10_000)
    return csv_response(
        report_service.roster_to_csv(students),
        f"danh-sach-sinh-vien-{date.today().isoformat()}.csv",
    )
