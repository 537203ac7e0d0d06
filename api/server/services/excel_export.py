"""
Excel Export Service
Writes an exam to a two-sheet .xlsx workbook (exam info + questions).
"""
import logging

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from server.schemas import Exam

logger = logging.getLogger(__name__)

INFO_SHEET = "معلومات الاختبار"
QUESTIONS_SHEET = "الأسئلة"

QUESTION_HEADERS = [
    "رقم السؤال",
    "السؤال",
    "الخيار أ",
    "الخيار ب",
    "الخيار ج",
    "الخيار د",
    "الإجابة الصحيحة",
    "الدرجة",
    "رابط الصورة",
]
QUESTION_WIDTHS = [12, 60, 25, 25, 25, 25, 15, 10, 40]


def _set_widths(sheet, widths) -> None:
    for column, width in enumerate(widths, start=1):
        sheet.column_dimensions[get_column_letter(column)].width = width


def generate_xlsx(exam: Exam, output_path: str) -> None:
    """
    Generates an .xlsx file from an Exam.

    Args:
        exam: Exam with metadata and ordered questions.
        output_path: Absolute path where the .xlsx file should be saved.
    """
    logger.info("[Publisher] Generating XLSX at %s...", output_path)
    workbook = Workbook()

    info = workbook.active
    info.title = INFO_SHEET
    info.sheet_view.rightToLeft = True
    info.append(["معلومات الاختبار", "", ""])
    info.append(["", "", ""])
    info.append(["الحقل", "القيمة", "ملاحظات"])
    info.append(["عنوان الاختبار", exam.title, "العنوان الرئيسي للاختبار"])
    info.append(["الوصف", exam.description, "وصف تفصيلي للاختبار"])
    info.append(["المادة", exam.subject, "اسم المادة الدراسية"])
    info.append(["الصف", exam.grade, "الصف أو المرحلة الدراسية"])
    info.append(["المدة (بالدقائق)", exam.duration_minutes, "مدة الاختبار بالدقائق"])
    info.append(["درجة النجاح (%)", exam.passing_percent, "الحد الأدنى للنجاح"])
    info["A1"].font = Font(bold=True, size=14)
    _set_widths(info, [20, 40, 30])

    questions = workbook.create_sheet(QUESTIONS_SHEET)
    questions.sheet_view.rightToLeft = True
    questions.append(["أسئلة الاختبار - MCQ (اختيار من متعدد)"])
    questions.append([])
    questions.append(QUESTION_HEADERS)
    for cell in questions[3]:
        cell.font = Font(bold=True)
    for question in exam.questions:
        questions.append([
            question.index,
            question.text,
            question.option_a,
            question.option_b,
            question.option_c,
            question.option_d,
            question.correct_option,
            question.mark,
            question.image_url or "",
        ])
    _set_widths(questions, QUESTION_WIDTHS)

    workbook.save(output_path)
    logger.info("[Publisher] XLSX saved.")
