# conduct_scoring/services/report_service.py
import csv
import io
from xml.sax.saxutils import escape
from typing import Iterable, List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.lib.colors import lightgrey, black

from conduct_scoring.core.config import settings
from conduct_scoring.models.user import User
from conduct_scoring.schemas.scoring import ScoringRecord
from conduct_scoring.schemas.user import StudentSummary
from conduct_scoring.services.rubric import SECTIONS, STATUS_LABELS, grade_level

# Spreadsheet apps need the BOM to read the Vietnamese labels as UTF-8
UTF8_BOM = "\ufeff"
_PDF_FONT_NAME = "ReportFont"


def _cell(value) -> str:
    return "" if value is None else str(value)


def _write_csv(rows: Iterable[List]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([_cell(c) for c in row])
    return UTF8_BOM + buf.getvalue()


def export_filename(user: User, ext: str) -> str:
    return f"phieu-cham-diem-{user.student_code or 'student'}.{ext}"


def _score_level(record: ScoringRecord) -> Optional[str]:
    if record.final_score is not None:
        return grade_level(record.final_score)
    return None


def record_to_csv(record: ScoringRecord, user: User) -> str:
    rows: List[List] = [
        ["Thông tin", "Giá trị"],
        ["Họ và tên", user.full_name],
        ["Mã sinh viên", user.student_code or "N/A"],
        ["Lớp", user.class_id or "N/A"],
        ["Học kỳ", record.semester],
        ["Năm học", record.academic_year],
        [],
        ["Mục đánh giá", "Điểm tự đánh giá", "Điểm tối đa", "Minh chứng", "Số tệp"],
    ]
    for section in SECTIONS:
        data = record.sections[section.id]
        rows.append(
            [section.title, data.self_score, section.max_score, data.evidence, len(data.files)]
        )
    rows += [
        [],
        ["Tổng kết", "Điểm"],
        ["Điểm tự đánh giá", record.total_self_score],
        ["Điểm lớp", record.class_score],
        ["Điểm giảng viên", record.teacher_score],
        ["Điểm cuối cùng", record.final_score],
        ["Xếp loại", _score_level(record)],
        ["Trạng thái", STATUS_LABELS[record.status]],
    ]
    return _write_csv(rows)


def roster_to_csv(students: Iterable[StudentSummary]) -> str:
    rows: List[List] = [
        [
            "STT",
            "Mã sinh viên",
            "Họ và tên",
            "Email",
            "Số điện thoại",
            "Lớp",
            "Số phiếu",
            "Điểm TB",
            "Xếp loại",
            "Lần nộp cuối",
        ]
    ]
    for index, s in enumerate(students, start=1):
        rows.append(
            [
                index,
                s.student_code,
                s.full_name,
                s.email,
                s.phone,
                s.class_id,
                s.total_records,
                s.average_score,
                s.grade_level,
                s.last_submission.strftime("%d/%m/%Y") if s.last_submission else "",
            ]
        )
    return _write_csv(rows)


def _pdf_font() -> str:
    """Helvetica has no Vietnamese glyphs; use the configured TTF when there is one."""
    if not settings.PDF_FONT_PATH:
        return "Helvetica"
    if _PDF_FONT_NAME not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(_PDF_FONT_NAME, settings.PDF_FONT_PATH))
    return _PDF_FONT_NAME


def _or_dash(value) -> str:
    return "--" if value is None else str(value)


def record_to_pdf(record: ScoringRecord, user: User) -> bytes:
    font = _pdf_font()
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "Title", parent=styles["Heading1"], fontName=font, alignment=1, fontSize=18
    )
    heading_style = ParagraphStyle(
        "Heading", parent=styles["Heading2"], fontName=font, fontSize=12,
        spaceBefore=10, spaceAfter=4,
    )
    normal_style = ParagraphStyle("Body", parent=styles["Normal"], fontName=font)

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4,
        topMargin=0.6 * inch, bottomMargin=0.6 * inch,
        leftMargin=0.75 * inch, rightMargin=0.75 * inch,
    )

    story = [
        Paragraph("PHIẾU CHẤM ĐIỂM RÈN LUYỆN", title_style),
        Spacer(1, 0.2 * inch),
        Paragraph(f"Họ và tên: {escape(user.full_name)}", normal_style),
        Paragraph(f"Mã sinh viên: {escape(user.student_code or 'N/A')}", normal_style),
        Paragraph(f"Lớp: {escape(user.class_id or 'N/A')}", normal_style),
        Paragraph(
            f"Học kỳ: {record.semester} - Năm học: {escape(record.academic_year)}", normal_style
        ),
    ]

    for section in SECTIONS:
        data = record.sections[section.id]
        story.append(Paragraph(escape(section.title), heading_style))
        story.append(
            Paragraph(
                f"Điểm tự đánh giá: {data.self_score}/{section.max_score}", normal_style
            )
        )
        story.append(Paragraph(escape(data.evidence) or "Không có minh chứng", normal_style))
        if data.files:
            story.append(Paragraph(f"Tệp minh chứng: {len(data.files)}", normal_style))

    story.append(Paragraph("TỔNG KẾT ĐIỂM", heading_style))
    summary = Table(
        [
            ["Điểm tự đánh giá", f"{record.total_self_score}/100"],
            ["Điểm lớp", f"{_or_dash(record.class_score)}/100"],
            ["Điểm giảng viên", f"{_or_dash(record.teacher_score)}/100"],
            ["Điểm cuối cùng", f"{_or_dash(record.final_score)}/100"],
            ["Xếp loại", _or_dash(_score_level(record))],
            ["Trạng thái", STATUS_LABELS[record.status]],
        ],
        colWidths=[2.5 * inch, 2.5 * inch],
    )
    summary.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), font),
                ("GRID", (0, 0), (-1, -1), 0.5, black),
                ("BACKGROUND", (0, 0), (0, -1), lightgrey),
            ]
        )
    )
    story.append(summary)

    # SimpleDocTemplate breaks pages as needed
    doc.build(story)
    return buf.getvalue()
