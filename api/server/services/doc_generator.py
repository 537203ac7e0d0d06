"""
Document Generator Service
Handles .docx exam generation with right-to-left Arabic layout.
"""
import logging

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt

from server.schemas import Difficulty, Exam, Question

logger = logging.getLogger(__name__)

OPTION_LABELS = {"A": "أ", "B": "ب", "C": "ج", "D": "د"}

DIFFICULTY_LABELS = {
    Difficulty.EASY: "سهل",
    Difficulty.MEDIUM: "متوسط",
    Difficulty.HARD: "صعب",
}


def _rtl_paragraph(doc: Document, text: str = ""):
    paragraph = doc.add_paragraph(text)
    paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    return paragraph


def _add_options(doc: Document, question: Question) -> None:
    for letter, text in zip(OPTION_LABELS, question.options):
        p_opt = _rtl_paragraph(doc)
        p_opt.paragraph_format.right_indent = Inches(0.5)
        p_opt.add_run(f"{OPTION_LABELS[letter]}) {text}")


def generate_docx(exam: Exam, output_path: str) -> None:
    """
    Generates a .docx file from an Exam.

    Args:
        exam: Exam with metadata and ordered questions.
        output_path: Absolute path where the .docx file should be saved.
    """
    logger.info("[Publisher] Generating DOCX at %s...", output_path)
    doc = Document()

    core_properties = doc.core_properties
    core_properties.title = exam.title
    core_properties.subject = exam.subject

    style = doc.styles["Normal"]
    style.font.size = Pt(14)

    # Title Section
    heading = doc.add_heading(exam.title, 0)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

    p_info = doc.add_paragraph()
    p_info.alignment = WD_ALIGN_PARAGRAPH.CENTER
    if exam.subject:
        p_info.add_run(f"المادة: {exam.subject}").bold = True
    if exam.grade:
        p_info.add_run(f" | الصف: {exam.grade}")
    p_info.add_run(f" | المدة: {exam.duration_minutes} دقيقة")

    p_totals = doc.add_paragraph()
    p_totals.alignment = WD_ALIGN_PARAGRAPH.CENTER
    p_totals.add_run(f"عدد الأسئلة: {len(exam.questions)} | الدرجة الكلية: {exam.total_marks}")

    doc.add_paragraph("_" * 50).alignment = WD_ALIGN_PARAGRAPH.CENTER

    # Questions Section
    for question in exam.questions:
        p = _rtl_paragraph(doc)
        p.paragraph_format.space_before = Pt(12)
        run = p.add_run(f"{question.index}. {question.text}")
        run.bold = True

        tag = _rtl_paragraph(doc)
        tag_run = tag.add_run(f"[{DIFFICULTY_LABELS[question.difficulty]} | {question.mark} درجة]")
        tag_run.italic = True
        tag_run.font.size = Pt(10)

        if question.image_url and not question.image_url.startswith("data:"):
            p_img = doc.add_paragraph()
            p_img.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run_img = p_img.add_run(f"[صورة: {question.image_url}]")
            run_img.italic = True
            run_img.font.size = Pt(10)

        _add_options(doc, question)

    # Answer Key (New Page)
    doc.add_page_break()
    doc.add_heading("مفتاح الإجابات / Answer Key", level=1)

    table = doc.add_table(rows=1, cols=3)
    table.style = "Table Grid"
    hdr_cells = table.rows[0].cells
    hdr_cells[0].text = "رقم السؤال"
    hdr_cells[1].text = "الإجابة"
    hdr_cells[2].text = "الشرح"

    for question in exam.questions:
        row_cells = table.add_row().cells
        row_cells[0].text = str(question.index)
        row_cells[1].text = OPTION_LABELS.get(question.correct_option, question.correct_option)
        row_cells[2].text = question.explanation or "-"

    doc.save(output_path)
    logger.info("[Publisher] DOCX saved.")
