# conduct_scoring/services/record_store.py
from __future__ import annotations

from typing import List, Optional, Protocol

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from conduct_scoring.core.errors import StaleRecordError
from conduct_scoring.models.scoring_record import ScoringRecordRow
from conduct_scoring.models.user import User
from conduct_scoring.schemas.scoring import ScoringRecord, SectionScore


class RecordStore(Protocol):
    """Where scoring records live. Business rules never talk to the DB directly."""

    def get_by_key(
        self, student_id: int, semester: str, academic_year: str
    ) -> Optional[ScoringRecord]: ...

    def get(self, record_id: int) -> Optional[ScoringRecord]: ...

    def save(self, record: ScoringRecord) -> ScoringRecord: ...


def row_to_record(row: ScoringRecordRow) -> ScoringRecord:
    return ScoringRecord(
        id=row.id,
        student_id=row.student_id,
        semester=row.semester,
        academic_year=row.academic_year,
        sections={
            sid: SectionScore.model_validate(data) for sid, data in row.sections.items()
        },
        class_score=row.class_score,
        teacher_score=row.teacher_score,
        final_score=row.final_score,
        feedback=row.feedback,
        graded_by=row.graded_by,
        status=row.status,
        submitted_at=row.submitted_at,
        graded_at=row.graded_at,
        version=row.version,
    )


def _row_values(record: ScoringRecord) -> dict:
    return {
        "sections": {sid: s.model_dump() for sid, s in record.sections.items()},
        "total_self_score": record.total_self_score,
        "class_score": record.class_score,
        "teacher_score": record.teacher_score,
        "final_score": record.final_score,
        "feedback": record.feedback,
        "graded_by": record.graded_by,
        "status": record.status,
        "submitted_at": record.submitted_at,
        "graded_at": record.graded_at,
    }


class SqlRecordStore:
    def __init__(self, db: Session):
        self.db = db

    def get_by_key(
        self, student_id: int, semester: str, academic_year: str
    ) -> Optional[ScoringRecord]:
        row = (
            self.db.query(ScoringRecordRow)
            .filter(
                ScoringRecordRow.student_id == student_id,
                ScoringRecordRow.semester == semester,
                ScoringRecordRow.academic_year == academic_year,
            )
            .first()
        )
        return row_to_record(row) if row is not None else None

    def get(self, record_id: int) -> Optional[ScoringRecord]:
        row = self.db.get(ScoringRecordRow, record_id)
        return row_to_record(row) if row is not None else None

    def save(self, record: ScoringRecord) -> ScoringRecord:
        """
        Compare-and-swap write.

        version 0 means "never persisted" and inserts; any other version only
        overwrites a row still carrying that same version.
        """
        if record.version == 0:
            return self._insert(record)

        result = self.db.execute(
            update(ScoringRecordRow)
            .where(
                ScoringRecordRow.id == record.id,
                ScoringRecordRow.version == record.version,
            )
            .values(version=record.version + 1, **_row_values(record))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise StaleRecordError(
                f"scoring record {record.id} was modified by someone else"
            )
        self.db.commit()
        return record.model_copy(update={"version": record.version + 1}, deep=True)

    def _insert(self, record: ScoringRecord) -> ScoringRecord:
        row = ScoringRecordRow(
            student_id=record.student_id,
            semester=record.semester,
            academic_year=record.academic_year,
            version=1,
            **_row_values(record),
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise StaleRecordError(
                f"a scoring record for student {record.student_id}, semester "
                f"{record.semester} {record.academic_year} already exists"
            )
        self.db.refresh(row)
        return row_to_record(row)

    def list(
        self,
        *,
        status: Optional[str] = None,
        class_id: Optional[str] = None,
        semester: Optional[str] = None,
        academic_year: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ScoringRecord]:
        """Grading queue for teachers, oldest submission first."""
        query = self.db.query(ScoringRecordRow)
        if status:
            query = query.filter(ScoringRecordRow.status == status)
        if class_id:
            query = query.join(User, User.id == ScoringRecordRow.student_id).filter(
                User.class_id == class_id
            )
        if semester:
            query = query.filter(ScoringRecordRow.semester == semester)
        if academic_year:
            query = query.filter(ScoringRecordRow.academic_year == academic_year)

        rows = (
            query.order_by(
                ScoringRecordRow.submitted_at.asc(), ScoringRecordRow.id.asc()
            )
            .offset(skip)
            .limit(limit)
            .all()
        )
        return [row_to_record(row) for row in rows]

    def list_for_student(self, student_id: int) -> List[ScoringRecord]:
        rows = (
            self.db.query(ScoringRecordRow)
            .filter(ScoringRecordRow.student_id == student_id)
            .order_by(ScoringRecordRow.academic_year.desc(), ScoringRecordRow.semester.desc())
            .all()
        )
        return [row_to_record(row) for row in rows]
