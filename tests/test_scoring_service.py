"""
Tests for the scoring core: section edits, submit / grade transitions,
final score aggregation and grade bands. No database involved.
"""
from datetime import datetime, timezone

import pytest

from conduct_scoring.core.errors import (
    InvalidStateError,
    OutOfRangeError,
    PermissionDeniedError,
    ValidationError,
)
from conduct_scoring.schemas.scoring import Actor
from conduct_scoring.services import scoring_service
from conduct_scoring.services.rubric import MAX_TOTAL_SCORE, SECTION_IDS, grade_level

NOW = datetime(2025, 1, 15, 8, 30, tzinfo=timezone.utc)

SCENARIO_SCORES = {
    "section1": 18,
    "section2": 23,
    "section3": 17,
    "section4": 22,
    "section5": 8,
}


@pytest.fixture
def draft(student_actor):
    return scoring_service.new_record(student_actor.user_id, "1", "2024-2025")


def _fill(record, actor, scores=SCENARIO_SCORES):
    for section_id, score in scores.items():
        record = scoring_service.update_section(record, section_id, "self_score", score, actor)
    return record


@pytest.fixture
def submitted(draft, student_actor):
    return scoring_service.submit(_fill(draft, student_actor), student_actor, now=NOW)


class TestNewRecord:
    def test_new_record_is_zeroed_draft(self, draft):
        assert draft.status == "draft"
        assert set(draft.sections) == set(SECTION_IDS)
        assert draft.total_self_score == 0
        assert draft.final_score is None
        assert draft.submitted_at is None
        assert draft.version == 0
        assert all(not s.touched and s.files == [] for s in draft.sections.values())

    def test_rubric_ceilings_sum_to_100(self):
        assert MAX_TOTAL_SCORE == 100

    @pytest.mark.parametrize("semester", ["0", "4", "HK1", ""])
    def test_rejects_unknown_semester(self, semester):
        with pytest.raises(ValidationError):
            scoring_service.new_record(1, semester, "2024-2025")

    @pytest.mark.parametrize("year", ["2024", "2024-2026", "2025-2024", "24-25", "2024/2025"])
    def test_rejects_malformed_academic_year(self, year):
        with pytest.raises(ValidationError):
            scoring_service.new_record(1, "1", year)

    def test_ensure_record_keeps_existing(self, draft):
        assert scoring_service.ensure_record(draft, 1, "1", "2024-2025") is draft

    def test_ensure_record_creates_when_missing(self):
        record = scoring_service.ensure_record(None, 7, "2", "2024-2025")
        assert record.student_id == 7
        assert record.semester == "2"
        assert record.status == "draft"


class TestUpdateSection:
    def test_total_tracks_sum_after_every_update(self, draft, student_actor):
        record = draft
        updates = [
            ("section1", 20),
            ("section3", 5),
            ("section1", 12),
            ("section5", 10),
            ("section4", 0),
            ("section2", 25),
        ]
        for section_id, score in updates:
            record = scoring_service.update_section(
                record, section_id, "self_score", score, student_actor
            )
            assert record.total_self_score == sum(
                s.self_score for s in record.sections.values()
            )
        assert record.total_self_score == 12 + 25 + 5 + 0 + 10

    def test_scenario_total_is_88(self, draft, student_actor):
        assert _fill(draft, student_actor).total_self_score == 88

    def test_update_does_not_mutate_input(self, draft, student_actor):
        before = draft.model_dump()
        updated = scoring_service.update_section(
            draft, "section1", "self_score", 15, student_actor
        )
        assert draft.model_dump() == before
        assert updated.sections["section1"].self_score == 15
        assert updated.sections["section1"].touched is True

    @pytest.mark.parametrize("section_id,value", [("section1", 21), ("section5", 11), ("section2", -1)])
    def test_score_outside_section_range_rejected(self, draft, student_actor, section_id, value):
        before = draft.model_dump()
        with pytest.raises(OutOfRangeError):
            scoring_service.update_section(draft, section_id, "self_score", value, student_actor)
        assert draft.model_dump() == before

    def test_score_at_ceiling_accepted(self, draft, student_actor):
        record = scoring_service.update_section(draft, "section2", "self_score", 25, student_actor)
        assert record.sections["section2"].self_score == 25

    @pytest.mark.parametrize("value", [True, 10.5, "10", None])
    def test_non_integer_score_rejected(self, draft, student_actor, value):
        with pytest.raises(ValidationError):
            scoring_service.update_section(draft, "section1", "self_score", value, student_actor)

    def test_unknown_section_rejected(self, draft, student_actor):
        with pytest.raises(ValidationError):
            scoring_service.update_section(draft, "section6", "self_score", 1, student_actor)

    def test_unknown_field_rejected(self, draft, student_actor):
        with pytest.raises(ValidationError):
            scoring_service.update_section(draft, "section1", "teacher_score", 1, student_actor)

    def test_evidence_and_files(self, draft, student_actor):
        record = scoring_service.update_section(
            draft, "section3", "evidence", "Tham gia mùa hè xanh", student_actor
        )
        record = scoring_service.attach_file(record, "section3", "/uploads/evidence/a.pdf", student_actor)
        record = scoring_service.attach_file(record, "section3", "/uploads/evidence/b.png", student_actor)

        section = record.sections["section3"]
        assert section.evidence == "Tham gia mùa hè xanh"
        assert section.files == ["/uploads/evidence/a.pdf", "/uploads/evidence/b.png"]
        # evidence does not count as scoring the section
        assert section.touched is False

    def test_files_must_be_strings(self, draft, student_actor):
        with pytest.raises(ValidationError):
            scoring_service.update_section(draft, "section1", "files", [b"bytes"], student_actor)

    def test_check_editable(self, draft, student_actor, teacher_actor):
        scoring_service.check_editable(draft, "section3", student_actor)

        with pytest.raises(ValidationError):
            scoring_service.check_editable(draft, "section9", student_actor)
        with pytest.raises(PermissionDeniedError):
            scoring_service.check_editable(draft, "section3", teacher_actor)
        with pytest.raises(InvalidStateError):
            scoring_service.check_editable(
                draft.model_copy(update={"status": "submitted"}), "section3", student_actor
            )

    def test_only_owner_may_edit(self, draft):
        intruder = Actor(user_id=2, role="student")
        with pytest.raises(PermissionDeniedError):
            scoring_service.update_section(draft, "section1", "self_score", 10, intruder)

    def test_teacher_may_not_edit_student_fields(self, draft, teacher_actor):
        with pytest.raises(PermissionDeniedError):
            scoring_service.update_section(draft, "section1", "self_score", 10, teacher_actor)

    @pytest.mark.parametrize("field,value", [("self_score", 10), ("evidence", "x"), ("files", ["f"])])
    def test_edit_after_submit_rejected(self, submitted, student_actor, field, value):
        before = submitted.model_dump()
        with pytest.raises(InvalidStateError):
            scoring_service.update_section(submitted, "section1", field, value, student_actor)
        assert submitted.model_dump() == before


class TestSubmit:
    def test_submit_sets_status_and_timestamp(self, draft, student_actor):
        record = scoring_service.submit(_fill(draft, student_actor), student_actor, now=NOW)
        assert record.status == "submitted"
        assert record.submitted_at == NOW
        assert record.final_score is None

    def test_untouched_sections_block_submit(self, draft, student_actor):
        partial = scoring_service.update_section(draft, "section1", "self_score", 18, student_actor)
        with pytest.raises(ValidationError) as exc:
            scoring_service.submit(partial, student_actor)
        assert "section2" in str(exc.value)
        assert "section1" not in str(exc.value)

    def test_explicit_zero_counts_as_scored(self, draft, student_actor):
        scores = dict(SCENARIO_SCORES, section5=0)
        record = scoring_service.submit(_fill(draft, student_actor, scores), student_actor)
        assert record.status == "submitted"
        assert record.total_self_score == 80

    def test_evidence_required_when_configured(self, draft, student_actor):
        record = _fill(draft, student_actor)
        with pytest.raises(ValidationError):
            scoring_service.submit(record, student_actor, require_evidence=True)

        for section_id in SECTION_IDS:
            record = scoring_service.update_section(
                record, section_id, "evidence", "minh chứng", student_actor
            )
        assert scoring_service.submit(record, student_actor, require_evidence=True).status == "submitted"

    def test_resubmit_rejected_and_record_unchanged(self, submitted, student_actor):
        before = submitted.model_dump()
        with pytest.raises(InvalidStateError):
            scoring_service.submit(submitted, student_actor)
        assert submitted.model_dump() == before

    def test_submit_graded_rejected(self, submitted, student_actor, teacher_actor):
        graded = scoring_service.grade(submitted, 90, teacher_actor)
        before = graded.model_dump()
        with pytest.raises(InvalidStateError):
            scoring_service.submit(graded, student_actor)
        assert graded.model_dump() == before

    def test_only_owner_may_submit(self, draft, student_actor, teacher_actor):
        with pytest.raises(PermissionDeniedError):
            scoring_service.submit(_fill(draft, student_actor), teacher_actor)


class TestClassScore:
    def test_set_class_score(self, submitted, teacher_actor):
        record = scoring_service.set_class_score(submitted, 85, teacher_actor)
        assert record.class_score == 85
        assert record.status == "submitted"

    def test_class_score_needs_submitted(self, draft, teacher_actor):
        with pytest.raises(InvalidStateError):
            scoring_service.set_class_score(draft, 85, teacher_actor)

    @pytest.mark.parametrize("value", [-1, 101])
    def test_class_score_range(self, submitted, teacher_actor, value):
        with pytest.raises(OutOfRangeError):
            scoring_service.set_class_score(submitted, value, teacher_actor)

    def test_student_cannot_set_class_score(self, submitted, student_actor):
        with pytest.raises(PermissionDeniedError):
            scoring_service.set_class_score(submitted, 85, student_actor)


class TestGrade:
    def test_grade_draft_rejected(self, draft, teacher_actor):
        with pytest.raises(InvalidStateError):
            scoring_service.grade(draft, 90, teacher_actor)

    def test_grade_twice_rejected(self, submitted, teacher_actor):
        graded = scoring_service.grade(submitted, 90, teacher_actor)
        with pytest.raises(InvalidStateError):
            scoring_service.grade(graded, 80, teacher_actor)

    @pytest.mark.parametrize("value", [105, 101, -1])
    def test_teacher_score_out_of_range(self, submitted, teacher_actor, value):
        before = submitted.model_dump()
        with pytest.raises(OutOfRangeError):
            scoring_service.grade(submitted, value, teacher_actor)
        assert submitted.model_dump() == before

    def test_student_cannot_grade(self, submitted, student_actor):
        with pytest.raises(PermissionDeniedError):
            scoring_service.grade(submitted, 90, student_actor)

    def test_grade_round_trip_is_deterministic(self, submitted, teacher_actor):
        first = scoring_service.grade(submitted, 90, teacher_actor, now=NOW)
        second = scoring_service.grade(submitted, 90, teacher_actor, now=NOW)

        assert first.status == "graded"
        assert first.graded_at == NOW
        assert first.final_score == second.final_score
        assert first.model_dump() == second.model_dump()

    def test_scenario_without_class_score(self, submitted, teacher_actor):
        graded = scoring_service.grade(submitted, 87, teacher_actor, feedback="Tốt")
        assert graded.status == "graded"
        assert graded.teacher_score == 87
        assert graded.feedback == "Tốt"
        assert graded.graded_by == teacher_actor.user_id
        # no class score: teacher score stands alone
        assert graded.final_score == 87

    def test_scenario_with_class_score(self, submitted, teacher_actor):
        record = scoring_service.set_class_score(submitted, 85, teacher_actor)
        graded = scoring_service.grade(record, 87, teacher_actor, feedback="Tốt")
        # (88 + 85 + 87) / 3 = 86.67
        assert graded.final_score == 87
        assert graded.teacher_score == 87

    def test_legacy_policy_ignores_record_inputs(self, submitted, teacher_actor):
        graded = scoring_service.grade(submitted, 90, teacher_actor, policy="legacy")
        # (88 + 85 + 90) / 3 = 87.67
        assert graded.final_score == 88

    def test_unknown_policy(self, submitted, teacher_actor):
        with pytest.raises(ValidationError):
            scoring_service.grade(submitted, 90, teacher_actor, policy="median")


class TestComputeFinalScore:
    @pytest.mark.parametrize(
        "total,class_score,teacher,expected",
        [
            (88, 85, 87, 87),
            (88, 85, 86, 86),  # 86.33
            (100, 100, 100, 100),
            (0, 0, 0, 0),
            (70, 80, 90, 80),
            (50, None, 64, 64),
        ],
    )
    def test_average_policy(self, total, class_score, teacher, expected):
        assert scoring_service.compute_final_score(total, class_score, teacher) == expected

    def test_legacy_policy(self):
        assert scoring_service.compute_final_score(0, None, 87, "legacy") == 87
        assert scoring_service.compute_final_score(0, None, 0, "legacy") == 58  # 57.67


class TestGradeLevel:
    @pytest.mark.parametrize(
        "score,label",
        [
            (100, "Xuất sắc"),
            (90, "Xuất sắc"),
            (89, "Tốt"),
            (80, "Tốt"),
            (79, "Khá"),
            (65, "Khá"),
            (64, "Trung bình"),
            (50, "Trung bình"),
            (49, "Yếu"),
            (35, "Yếu"),
            (34, "Kém"),
            (0, "Kém"),
        ],
    )
    def test_boundaries(self, score, label):
        assert grade_level(score) == label

    def test_fractional_score_below_threshold(self):
        assert grade_level(89.99) == "Tốt"
