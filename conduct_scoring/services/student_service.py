# conduct_scoring/services/student_service.py
import logging
import secrets
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from conduct_scoring.core.security import get_password_hash
from conduct_scoring.models.scoring_record import ScoringRecordRow
from conduct_scoring.models.user import User
from conduct_scoring.schemas.user import StudentCreate, StudentSummary
from conduct_scoring.services.rubric import grade_level

logger = logging.getLogger(__name__)


def _average(scores: List[int]) -> int:
    if not scores:
        return 0
    mean = Decimal(sum(scores)) / Decimal(len(scores))
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def list_students(
    db: Session,
    *,
    class_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[StudentSummary]:
    """
    Roster for the teacher view: one row per student with the number of
    scoring records and the average final score over graded ones.
    """
    query = db.query(User).filter(User.role == "student")
    if class_id:
        query = query.filter(User.class_id == class_id)
    students = query.order_by(User.student_code.asc(), User.id.asc()).offset(skip).limit(limit).all()

    summaries = []
    for student in students:
        rows = (
            db.query(ScoringRecordRow)
            .filter(ScoringRecordRow.student_id == student.id)
            .all()
        )
        graded = [r.final_score for r in rows if r.status == "graded" and r.final_score is not None]
        submitted = [r.submitted_at for r in rows if r.submitted_at is not None]
        average = _average(graded)

        summaries.append(
            StudentSummary(
                id=student.id,
                student_code=student.student_code,
                full_name=student.full_name,
                email=student.email,
                phone=student.phone,
                class_id=student.class_id,
                total_records=len(rows),
                average_score=average,
                grade_level=grade_level(average),
                last_submission=max(submitted) if submitted else None,
            )
        )
    return summaries


def add_student(db: Session, obj_in: StudentCreate) -> Tuple[User, str]:
    """
    Create a student account in a class on a teacher's behalf.

    Returns the user and the generated initial password; only its hash is stored.
    Callers check for duplicate email / student code first.
    """
    password = secrets.token_urlsafe(9)
    student = User(
        email=obj_in.email,
        password_hash=get_password_hash(password),
        full_name=(obj_in.full_name or "").strip() or obj_in.email.split("@")[0],
        role="student",
        student_code=obj_in.student_code,
        class_id=obj_in.class_id,
        phone=obj_in.phone,
    )
    db.add(student)
    db.commit()
    db.refresh(student)

    logger.info(f"Added student {student.id} ({student.email}) to class {student.class_id}")
    return student, password
