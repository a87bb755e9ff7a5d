# conduct_scoring/schemas/scoring.py
from datetime import datetime
from typing import Dict, List, Literal

from pydantic import BaseModel, Field, StrictInt, computed_field

Role = Literal["student", "teacher"]
Semester = Literal["1", "2", "3"]
RecordStatus = Literal["draft", "submitted", "graded"]


class Actor(BaseModel):
    """Who is performing an operation; built per request from the JWT."""
    user_id: int
    role: Role


class SectionScore(BaseModel):
    self_score: int = 0
    evidence: str = ""
    files: List[str] = Field(default_factory=list)
    # True once the student has explicitly entered a score (0 included)
    touched: bool = False


class ScoringRecord(BaseModel):
    id: int | None = None
    student_id: int
    semester: Semester
    academic_year: str

    sections: Dict[str, SectionScore]

    class_score: int | None = None
    teacher_score: int | None = None
    final_score: int | None = None
    feedback: str | None = None
    graded_by: int | None = None

    status: RecordStatus = "draft"
    submitted_at: datetime | None = None
    graded_at: datetime | None = None

    # 0 until the store has persisted the record
    version: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_self_score(self) -> int:
        return sum(section.self_score for section in self.sections.values())


class SectionUpdate(BaseModel):
    """Student edit of one rubric section; unset fields are left alone.

    Scores are strict: JSON `true` or `"18"` is rejected, not coerced.
    """
    self_score: StrictInt | None = None
    evidence: str | None = None
    files: List[str] | None = None
    version: int | None = None  # expected record version, optional


class SubmitRequest(BaseModel):
    semester: Semester
    academic_year: str
    version: int | None = None


class ClassScoreUpdate(BaseModel):
    class_score: StrictInt
    version: int | None = None


class GradeRequest(BaseModel):
    teacher_score: StrictInt
    feedback: str | None = None
    version: int | None = None


class RubricSectionPublic(BaseModel):
    id: str
    title: str
    max_score: int
    description: str


class ScoringRecordPublic(ScoringRecord):
    grade_level: str | None = None
    student_code: str | None = None
    student_name: str | None = None
    class_id: str | None = None
