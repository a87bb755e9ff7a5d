# conduct_scoring/api/v1/endpoints/scores.py
from typing import List

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from conduct_scoring.core.security import actor_for, get_current_student, get_current_user
from conduct_scoring.db.session import get_db
from conduct_scoring.models.user import User
from conduct_scoring.schemas.scoring import (
    RubricSectionPublic,
    ScoringRecord,
    ScoringRecordPublic,
    SectionUpdate,
    Semester,
    SubmitRequest,
)
from conduct_scoring.services import record_service, report_service
from conduct_scoring.services.record_store import SqlRecordStore
from conduct_scoring.services.rubric import SECTIONS, grade_level

router = APIRouter(prefix="/scores", tags=["scores"])


def record_to_public(record: ScoringRecord, student: User) -> ScoringRecordPublic:
    # Graded records are banded on the final score, everything else on the self score
    score = record.final_score if record.final_score is not None else record.total_self_score
    return ScoringRecordPublic(
        **record.model_dump(exclude={"total_self_score"}),
        grade_level=grade_level(score),
        student_code=student.student_code,
        student_name=student.full_name,
        class_id=student.class_id,
    )


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/rubric", response_model=List[RubricSectionPublic])
def get_rubric(current_user: User = Depends(get_current_user)):
    return [
        RubricSectionPublic(
            id=s.id, title=s.title, max_score=s.max_score, description=s.description
        )
        for s in SECTIONS
    ]


@router.get("/me", response_model=ScoringRecordPublic)
def get_my_record(
    semester: Semester = Query(...),
    academic_year: str = Query(...),
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    """
    The student's scoring record for one term; created as an empty draft on first access.
    """
    record = record_service.get_or_create_record(
        db, student=current_student, semester=semester, academic_year=academic_year
    )
    return record_to_public(record, current_student)


@router.get("/me/history", response_model=List[ScoringRecordPublic])
def list_my_records(
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    records = SqlRecordStore(db).list_for_student(current_student.id)
    return [record_to_public(r, current_student) for r in records]


@router.put("/me/sections/{section_id}", response_model=ScoringRecordPublic)
def update_my_section(
    section_id: str,
    obj_in: SectionUpdate,
    semester: Semester = Query(...),
    academic_year: str = Query(...),
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    record = record_service.update_section(
        db,
        student=current_student,
        actor=actor_for(current_student),
        semester=semester,
        academic_year=academic_year,
        section_id=section_id,
        obj_in=obj_in,
    )
    return record_to_public(record, current_student)


@router.post(
    "/me/sections/{section_id}/files",
    response_model=ScoringRecordPublic,
    status_code=status.HTTP_201_CREATED,
)
def upload_evidence(
    section_id: str,
    semester: Semester = Query(...),
    academic_year: str = Query(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    """
    Store an evidence file and attach its reference to the section.
    """
    record = record_service.attach_upload(
        db,
        student=current_student,
        actor=actor_for(current_student),
        semester=semester,
        academic_year=academic_year,
        section_id=section_id,
        filename=file.filename,
        content_type=file.content_type,
        content=file.file.read(),
    )
    return record_to_public(record, current_student)


@router.post("/me/submit", response_model=ScoringRecordPublic)
def submit_my_record(
    obj_in: SubmitRequest,
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    record = record_service.submit_record(
        db,
        student=current_student,
        actor=actor_for(current_student),
        semester=obj_in.semester,
        academic_year=obj_in.academic_year,
        expected_version=obj_in.version,
    )
    return record_to_public(record, current_student)


@router.get("/me/export.csv")
def export_my_record_csv(
    semester: Semester = Query(...),
    academic_year: str = Query(...),
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    record = record_service.get_or_create_record(
        db, student=current_student, semester=semester, academic_year=academic_year
    )
    return csv_response(
        report_service.record_to_csv(record, current_student),
        report_service.export_filename(current_student, "csv"),
    )


@router.get("/me/export.pdf")
def export_my_record_pdf(
    semester: Semester = Query(...),
    academic_year: str = Query(...),
    db: Session = Depends(get_db),
    current_student: User = Depends(get_current_student),
):
    record = record_service.get_or_create_record(
        db, student=current_student, semester=semester, academic_year=academic_year
    )
    return pdf_response(
        report_service.record_to_pdf(record, current_student),
        report_service.export_filename(current_student, "pdf"),
    )
