# conduct_scoring/services/record_service.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from conduct_scoring.core.config import settings
from conduct_scoring.core.errors import ScoringError, StaleRecordError, ValidationError
from conduct_scoring.models.user import User
from conduct_scoring.schemas.scoring import Actor, ScoringRecord, SectionUpdate
from conduct_scoring.services import evidence_store, notification_service, scoring_service
from conduct_scoring.services.record_store import SqlRecordStore

logger = logging.getLogger(__name__)


def _check_version(record: ScoringRecord, expected: Optional[int]) -> None:
    # A client that read an older copy must not overwrite what it never saw
    if expected is not None and expected != record.version:
        raise StaleRecordError(
            f"scoring record {record.id} is at version {record.version}, "
            f"client expected {expected}"
        )


def get_or_create_record(
    db: Session,
    *,
    student: User,
    semester: str,
    academic_year: str,
) -> ScoringRecord:
    """A student's record for the term, created as a zeroed draft on first access."""
    store = SqlRecordStore(db)
    existing = store.get_by_key(student.id, semester, academic_year)
    if existing is not None:
        return existing

    record = scoring_service.ensure_record(None, student.id, semester, academic_year)
    try:
        saved = store.save(record)
    except StaleRecordError:
        # Created concurrently by another request; use that one
        saved = store.get_by_key(student.id, semester, academic_year)
        if saved is None:
            raise
        return saved

    logger.info(
        f"Created scoring record {saved.id} for student {student.id} "
        f"(semester {semester}, {academic_year})"
    )
    return saved


def get_record(db: Session, record_id: int) -> Optional[ScoringRecord]:
    return SqlRecordStore(db).get(record_id)


def update_section(
    db: Session,
    *,
    student: User,
    actor: Actor,
    semester: str,
    academic_year: str,
    section_id: str,
    obj_in: SectionUpdate,
) -> ScoringRecord:
    """
    Apply every field set on `obj_in` to one section and persist once.
    Fields are applied in a fixed order so a rejected score leaves nothing saved.
    """
    store = SqlRecordStore(db)
    record = get_or_create_record(
        db, student=student, semester=semester, academic_year=academic_year
    )
    _check_version(record, obj_in.version)

    changes = obj_in.model_dump(exclude_unset=True, exclude={"version"})
    if not changes:
        raise ValidationError("nothing to update")
    for field in scoring_service.EDITABLE_FIELDS:
        if field in changes:
            record = scoring_service.update_section(
                record, section_id, field, changes[field], actor
            )

    return store.save(record)


def attach_upload(
    db: Session,
    *,
    student: User,
    actor: Actor,
    semester: str,
    academic_year: str,
    section_id: str,
    filename: Optional[str],
    content_type: Optional[str],
    content: bytes,
) -> ScoringRecord:
    """
    Store an evidence file and attach its reference to one section.

    The record is checked before anything touches the disk, and a file whose
    reference could not be saved on the record is removed again.
    """
    store = SqlRecordStore(db)
    record = get_or_create_record(
        db, student=student, semester=semester, academic_year=academic_year
    )
    scoring_service.check_editable(record, section_id, actor)

    file_ref = evidence_store.save_upload(
        user_id=student.id,
        kind="evidence",
        filename=filename,
        content_type=content_type,
        content=content,
    )
    try:
        saved = store.save(scoring_service.attach_file(record, section_id, file_ref, actor))
    except ScoringError:
        evidence_store.delete_upload(file_ref)
        raise

    logger.info(f"Attached {file_ref} to {section_id} of scoring record {saved.id}")
    return saved


def submit_record(
    db: Session,
    *,
    student: User,
    actor: Actor,
    semester: str,
    academic_year: str,
    expected_version: Optional[int] = None,
) -> ScoringRecord:
    store = SqlRecordStore(db)
    record = get_or_create_record(
        db, student=student, semester=semester, academic_year=academic_year
    )
    _check_version(record, expected_version)

    record = scoring_service.submit(
        record, actor, require_evidence=settings.REQUIRE_EVIDENCE_ON_SUBMIT
    )
    saved = store.save(record)
    logger.info(
        f"Scoring record {saved.id} submitted by student {student.id} "
        f"(self score {saved.total_self_score})"
    )

    notification_service.dispatch(
        notification_service.build_notification(
            title="Phiếu chấm điểm mới",
            message=(
                f"Sinh viên {student.full_name} đã gửi phiếu chấm điểm học kỳ "
                f"{saved.semester} năm học {saved.academic_year}"
            ),
            type="info",
            target_role="teacher",
            sender_id=student.id,
            class_id=student.class_id,
            action_url="/teacher/dashboard?tab=grading",
        )
    )
    return saved


def set_class_score(
    db: Session,
    *,
    record: ScoringRecord,
    actor: Actor,
    class_score: int,
    expected_version: Optional[int] = None,
) -> ScoringRecord:
    _check_version(record, expected_version)
    updated = scoring_service.set_class_score(record, class_score, actor)
    saved = SqlRecordStore(db).save(updated)
    logger.info(f"Class score {class_score} recorded on scoring record {saved.id}")
    return saved


def grade_record(
    db: Session,
    *,
    record: ScoringRecord,
    teacher: User,
    actor: Actor,
    teacher_score: int,
    feedback: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> ScoringRecord:
    _check_version(record, expected_version)
    graded = scoring_service.grade(
        record,
        teacher_score,
        actor,
        feedback,
        policy=settings.FINAL_SCORE_POLICY,
    )
    saved = SqlRecordStore(db).save(graded)
    logger.info(
        f"Scoring record {saved.id} graded by teacher {teacher.id}: "
        f"teacher_score={saved.teacher_score}, final_score={saved.final_score}"
    )

    notification_service.dispatch(
        notification_service.build_notification(
            title="Phiếu đã được duyệt",
            message=(
                f"Phiếu chấm điểm rèn luyện học kỳ {saved.semester} năm học "
                f"{saved.academic_year} của bạn đã được giảng viên duyệt với điểm "
                f"{saved.final_score}/100"
            ),
            type="success",
            target_role="student",
            sender_id=teacher.id,
            target_user_ids=[saved.student_id],
            action_url="/student/dashboard?tab=scoring",
        )
    )
    return saved
