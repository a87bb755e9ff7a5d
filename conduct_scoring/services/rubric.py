# conduct_scoring/services/rubric.py
from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class RubricSection:
    id: str
    title: str
    max_score: int
    description: str


SECTIONS: List[RubricSection] = [
    RubricSection(
        id="section1",
        title="I. Ý thức học tập",
        max_score=20,
        description="Đánh giá về thái độ học tập, tham gia lớp học, hoàn thành bài tập",
    ),
    RubricSection(
        id="section2",
        title="II. Chấp hành nội quy",
        max_score=25,
        description="Tuân thủ nội quy trường, lớp, ký túc xá và các quy định khác",
    ),
    RubricSection(
        id="section3",
        title="III. Tham gia hoạt động xã hội",
        max_score=20,
        description="Tham gia các hoạt động tình nguyện, cộng đồng, xã hội",
    ),
    RubricSection(
        id="section4",
        title="IV. Ý thức công dân",
        max_score=25,
        description="Ý thức chấp hành pháp luật, đạo đức xã hội",
    ),
    RubricSection(
        id="section5",
        title="V. Tham gia công tác lớp hoặc thành tích đặc biệt",
        max_score=10,
        description="Đảm nhiệm công tác lớp, đoàn, hội hoặc có thành tích đặc biệt",
    ),
]

SECTIONS_BY_ID: Dict[str, RubricSection] = {s.id: s for s in SECTIONS}
SECTION_IDS: Tuple[str, ...] = tuple(SECTIONS_BY_ID)

MAX_TOTAL_SCORE = sum(s.max_score for s in SECTIONS)  # 100

# Evaluated top-down, first match wins
GRADE_BANDS: List[Tuple[int, str]] = [
    (90, "Xuất sắc"),
    (80, "Tốt"),
    (65, "Khá"),
    (50, "Trung bình"),
    (35, "Yếu"),
]
LOWEST_GRADE = "Kém"

STATUS_LABELS: Dict[str, str] = {
    "draft": "Bản nháp",
    "submitted": "Đã gửi",
    "graded": "Đã chấm điểm",
}


def max_score(section_id: str) -> int:
    return SECTIONS_BY_ID[section_id].max_score


def grade_level(score: float) -> str:
    """Map a 0-100 score to its conduct grade band."""
    for threshold, label in GRADE_BANDS:
        if score >= threshold:
            return label
    return LOWEST_GRADE
