# conduct_scoring/models/scoring_record.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from conduct_scoring.db.base_class import Base

class ScoringRecordRow(Base):
    __tablename__ = "scoring_records"

    id = Column(Integer, primary_key=True, index=True)

    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    semester = Column(String(1), nullable=False)
    academic_year = Column(String(9), nullable=False)

    # {"section1": {"self_score": 18, "evidence": "...", "files": [...], "touched": true}, ...}
    sections = Column(JSON, nullable=False)
    # Copy of the sum of sections[*].self_score, written on every save for querying
    total_self_score = Column(Integer, nullable=False, default=0)

    class_score = Column(Integer, nullable=True)
    teacher_score = Column(Integer, nullable=True)
    final_score = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    graded_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # draft / submitted / graded
    status = Column(String(20), nullable=False, default="draft", index=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)

    # Compare-and-swap counter
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("student_id", "semester", "academic_year"),
    )
