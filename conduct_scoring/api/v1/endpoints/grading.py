# conduct_scoring/api/v1/endpoints/grading.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from conduct_scoring.api.v1.endpoints.scores import csv_response, pdf_response, record_to_public
from conduct_scoring.core.security import actor_for, get_current_teacher
from conduct_scoring.db.session import get_db
from conduct_scoring.models.user import User
from conduct_scoring.schemas.scoring import (
    ClassScoreUpdate,
    GradeRequest,
    RecordStatus,
    ScoringRecord,
    ScoringRecordPublic,
    Semester,
)
from conduct_scoring.services import record_service, report_service
from conduct_scoring.services.record_store import SqlRecordStore

router = APIRouter(prefix="/grading", tags=["grading"])


def _get_record_and_student(db: Session, record_id: int) -> tuple[ScoringRecord, User]:
    record = record_service.get_record(db, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Scoring record not found")

    student = db.get(User, record.student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return record, student


@router.get("", response_model=List[ScoringRecordPublic])
def list_records(
    status: Optional[RecordStatus] = None,
    class_id: Optional[str] = None,
    semester: Optional[Semester] = None,
    academic_year: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    """
    Grading queue; filter by status='submitted' for records waiting on a teacher.
    """
    records = SqlRecordStore(db).list(
        status=status,
        class_id=class_id,
        semester=semester,
        academic_year=academic_year,
        skip=skip,
        limit=limit,
    )
    students = {
        u.id: u
        for u in db.query(User).filter(User.id.in_([r.student_id for r in records])).all()
    }
    return [record_to_public(r, students[r.student_id]) for r in records]


@router.get("/{record_id}", response_model=ScoringRecordPublic)
def get_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    record, student = _get_record_and_student(db, record_id)
    return record_to_public(record, student)


@router.put("/{record_id}/class-score", response_model=ScoringRecordPublic)
def update_class_score(
    record_id: int,
    obj_in: ClassScoreUpdate,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    record, student = _get_record_and_student(db, record_id)
    updated = record_service.set_class_score(
        db,
        record=record,
        actor=actor_for(current_teacher),
        class_score=obj_in.class_score,
        expected_version=obj_in.version,
    )
    return record_to_public(updated, student)


@router.put("/{record_id}", response_model=ScoringRecordPublic)
def grade_record(
    record_id: int,
    obj_in: GradeRequest,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    """
    Teacher grades a submitted record:
      - stores teacher_score / feedback
      - computes final_score
      - status -> 'graded'
    """
    record, student = _get_record_and_student(db, record_id)
    graded = record_service.grade_record(
        db,
        record=record,
        teacher=current_teacher,
        actor=actor_for(current_teacher),
        teacher_score=obj_in.teacher_score,
        feedback=obj_in.feedback,
        expected_version=obj_in.version,
    )
    return record_to_public(graded, student)


@router.get("/{record_id}/export.csv")
def export_record_csv(
    record_id: int,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    record, student = _get_record_and_student(db, record_id)
    return csv_response(
        report_service.record_to_csv(record, student),
        report_service.export_filename(student, "csv"),
    )


@router.get("/{record_id}/export.pdf")
def export_record_pdf(
    record_id: int,
    db: Session = Depends(get_db),
    current_teacher: User = Depends(get_current_teacher),
):
    record, student = _get_record_and_student(db, record_id)
    return pdf_response(
        report_service.record_to_pdf(record, student),
        report_service.export_filename(student, "pdf"),
    )
