# conduct_scoring/services/scoring_service.py
from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional

from conduct_scoring.core.errors import (
    InvalidStateError,
    OutOfRangeError,
    PermissionDeniedError,
    ValidationError,
)
from conduct_scoring.schemas.scoring import Actor, ScoringRecord, SectionScore
from conduct_scoring.services.rubric import SECTION_IDS, max_score

SEMESTERS = ("1", "2", "3")
EDITABLE_FIELDS = ("self_score", "evidence", "files")
FINAL_SCORE_POLICIES = ("average", "legacy")

# Baselines the first release of the portal averaged every teacher score against
LEGACY_SELF_BASELINE = 88
LEGACY_CLASS_BASELINE = 85

_ACADEMIC_YEAR_RE = re.compile(r"^(\d{4})-(\d{4})$")


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _require_int(name: str, value: Any) -> int:
    # bool is an int subclass; True must not pass as a score of 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    return value


def _require_owner(record: ScoringRecord, actor: Actor) -> None:
    if actor.role != "student" or actor.user_id != record.student_id:
        raise PermissionDeniedError("only the owning student may change this record")


def _require_teacher(actor: Actor) -> None:
    if actor.role != "teacher":
        raise PermissionDeniedError("only a teacher may grade records")


def _require_status(record: ScoringRecord, expected: str, action: str) -> None:
    if record.status != expected:
        raise InvalidStateError(
            f"cannot {action} a record in status '{record.status}' (needs '{expected}')"
        )


def validate_record_key(semester: str, academic_year: str) -> None:
    if semester not in SEMESTERS:
        raise ValidationError(f"semester must be one of {SEMESTERS}, got {semester!r}")

    match = _ACADEMIC_YEAR_RE.match(academic_year or "")
    if match is None:
        raise ValidationError(
            f"academic_year must look like 'YYYY-YYYY', got {academic_year!r}"
        )
    start, end = (int(y) for y in match.groups())
    if end != start + 1:
        raise ValidationError(f"academic_year {academic_year!r} must span consecutive years")


def new_record(student_id: int, semester: str, academic_year: str) -> ScoringRecord:
    """A zeroed draft for the (student, semester, academic year) key."""
    validate_record_key(semester, academic_year)
    return ScoringRecord(
        student_id=student_id,
        semester=semester,
        academic_year=academic_year,
        sections={section_id: SectionScore() for section_id in SECTION_IDS},
    )


def ensure_record(
    record: Optional[ScoringRecord],
    student_id: int,
    semester: str,
    academic_year: str,
) -> ScoringRecord:
    if record is not None:
        return record
    return new_record(student_id, semester, academic_year)


def check_editable(record: ScoringRecord, section_id: str, actor: Actor) -> None:
    """Raise unless `actor` may change `section_id` of `record` right now."""
    _require_owner(record, actor)
    _require_status(record, "draft", "edit")
    if section_id not in SECTION_IDS:
        raise ValidationError(f"unknown section {section_id!r}")


def update_section(
    record: ScoringRecord,
    section_id: str,
    field: str,
    value: Any,
    actor: Actor,
) -> ScoringRecord:
    """
    Student edit of one field of one rubric section.

    Returns a new record; `record` itself is never modified, so a rejected
    update leaves the caller's copy exactly as it was.
    """
    check_editable(record, section_id, actor)
    if field not in EDITABLE_FIELDS:
        raise ValidationError(f"field {field!r} is not editable")

    updated = record.model_copy(deep=True)
    section = updated.sections[section_id]

    if field == "self_score":
        score = _require_int("self_score", value)
        ceiling = max_score(section_id)
        if not 0 <= score <= ceiling:
            raise OutOfRangeError(
                f"{section_id} self_score must be between 0 and {ceiling}, got {score}"
            )
        section.self_score = score
        section.touched = True
    elif field == "evidence":
        if not isinstance(value, str):
            raise ValidationError("evidence must be text")
        section.evidence = value
    else:
        if not isinstance(value, list) or not all(isinstance(f, str) for f in value):
            raise ValidationError("files must be a list of file references")
        section.files = list(value)

    return updated


def attach_file(
    record: ScoringRecord,
    section_id: str,
    file_ref: str,
    actor: Actor,
) -> ScoringRecord:
    check_editable(record, section_id, actor)
    files = record.sections[section_id].files + [file_ref]
    return update_section(record, section_id, "files", files, actor)


def missing_sections(record: ScoringRecord) -> List[str]:
    return [sid for sid in SECTION_IDS if not record.sections[sid].touched]


def submit(
    record: ScoringRecord,
    actor: Actor,
    *,
    require_evidence: bool = False,
    now: Optional[datetime] = None,
) -> ScoringRecord:
    """
    draft -> submitted.

    Every section must have been scored explicitly; a deliberate 0 counts,
    a section the student never touched does not.
    """
    _require_owner(record, actor)
    _require_status(record, "draft", "submit")

    untouched = missing_sections(record)
    if untouched:
        raise ValidationError(f"sections not scored yet: {', '.join(untouched)}")

    if require_evidence:
        no_evidence = [
            sid for sid in SECTION_IDS if not record.sections[sid].evidence.strip()
        ]
        if no_evidence:
            raise ValidationError(f"evidence required for: {', '.join(no_evidence)}")

    return record.model_copy(
        update={"status": "submitted", "submitted_at": _now(now)},
        deep=True,
    )


def _check_score_0_100(name: str, value: Any) -> int:
    score = _require_int(name, value)
    if not 0 <= score <= 100:
        raise OutOfRangeError(f"{name} must be between 0 and 100, got {score}")
    return score


def set_class_score(record: ScoringRecord, class_score: Any, actor: Actor) -> ScoringRecord:
    _require_teacher(actor)
    _require_status(record, "submitted", "set the class score of")
    score = _check_score_0_100("class_score", class_score)
    return record.model_copy(update={"class_score": score}, deep=True)


def compute_final_score(
    total_self_score: int,
    class_score: Optional[int],
    teacher_score: int,
    policy: str = "average",
) -> int:
    if policy == "legacy":
        parts = [LEGACY_SELF_BASELINE, LEGACY_CLASS_BASELINE, teacher_score]
    elif policy == "average":
        if class_score is None:
            return teacher_score
        parts = [total_self_score, class_score, teacher_score]
    else:
        raise ValidationError(
            f"unknown final score policy {policy!r}, expected one of {FINAL_SCORE_POLICIES}"
        )
    return _round_half_up(Decimal(sum(parts)) / Decimal(len(parts)))


def grade(
    record: ScoringRecord,
    teacher_score: Any,
    actor: Actor,
    feedback: Optional[str] = None,
    *,
    policy: str = "average",
    now: Optional[datetime] = None,
) -> ScoringRecord:
    """submitted -> graded, storing the teacher score and the final score."""
    _require_teacher(actor)
    _require_status(record, "submitted", "grade")
    score = _check_score_0_100("teacher_score", teacher_score)

    final_score = compute_final_score(
        record.total_self_score, record.class_score, score, policy
    )

    return record.model_copy(
        update={
            "teacher_score": score,
            "final_score": final_score,
            "feedback": feedback,
            "graded_by": actor.user_id,
            "status": "graded",
            "graded_at": _now(now),
        },
        deep=True,
    )
