"""
Test Services
Tests the Muscle: DOCX/XLSX export, exam storage and PDF extraction.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from docx import Document
from openpyxl import load_workbook

from server.schemas import Exam
from server.services.doc_generator import generate_docx
from server.services.excel_export import INFO_SHEET, QUESTIONS_SHEET, generate_xlsx
from server.services.exam_store import ExamStore
from server.services.pdf_extractor import PdfExtractor


def test_docx_structure(sample_exam, tmp_path):
    """Test that generated DOCX has correct structure."""
    output_path = tmp_path / "test_output.docx"

    generate_docx(sample_exam, str(output_path))

    assert output_path.exists()
    doc = Document(str(output_path))
    text = "\n".join([para.text for para in doc.paragraphs])

    assert "اختبار الفيزياء" in text  # Title
    assert "المادة: الفيزياء" in text
    assert "المدة: 45 دقيقة" in text
    assert "عدد الأسئلة: 2 | الدرجة الكلية: 5" in text
    assert "1. ما هي الوحدة الأساسية" in text
    assert "[صعب | 3 درجة]" in text
    assert "ب) النيوتن" in text
    assert "[صورة: https://img.test/q2.png]" in text


def test_docx_answer_key(sample_exam, tmp_path):
    """Test that answer key table is present."""
    output_path = tmp_path / "test_answer_key.docx"

    generate_docx(sample_exam, str(output_path))

    doc = Document(str(output_path))
    assert len(doc.tables) == 1

    table = doc.tables[0]
    assert len(table.rows) == 3  # Header + one row per question
    assert table.rows[1].cells[1].text == "ب"
    assert table.rows[2].cells[2].text == "-"


def test_docx_metadata(sample_exam, tmp_path):
    """Test that document metadata is set correctly."""
    output_path = tmp_path / "test_metadata.docx"

    generate_docx(sample_exam, str(output_path))

    doc = Document(str(output_path))
    assert doc.core_properties.title == "اختبار الفيزياء"
    assert doc.core_properties.subject == "الفيزياء"


def test_docx_skips_inline_image_data(sample_exam, tmp_path):
    output_path = tmp_path / "inline.docx"
    question = sample_exam.questions[1].model_copy(update={"image_url": "data:image/png;base64,AAAA"})
    exam = sample_exam.model_copy(update={"questions": [question]})

    generate_docx(exam, str(output_path))

    text = "\n".join(para.text for para in Document(str(output_path)).paragraphs)
    assert "data:image" not in text


def test_xlsx_sheets(sample_exam, tmp_path):
    output_path = tmp_path / "exam.xlsx"

    generate_xlsx(sample_exam, str(output_path))

    workbook = load_workbook(str(output_path))
    assert workbook.sheetnames == [INFO_SHEET, QUESTIONS_SHEET]

    info = workbook[INFO_SHEET]
    assert info["B4"].value == "اختبار الفيزياء"
    assert info["B8"].value == 45


def test_xlsx_question_rows(sample_exam, tmp_path):
    output_path = tmp_path / "exam.xlsx"

    generate_xlsx(sample_exam, str(output_path))

    sheet = load_workbook(str(output_path))[QUESTIONS_SHEET]
    assert sheet["A3"].value == "رقم السؤال"
    assert sheet["A4"].value == 1
    assert sheet["C4"].value == "الجول"
    assert sheet["G5"].value == "B"
    assert sheet["H5"].value == 3
    assert sheet["I5"].value == "https://img.test/q2.png"
    assert sheet.max_row == 5


def test_store_round_trip(sample_exam, exam_store):
    result = exam_store.save(sample_exam)
    assert result.ok
    assert result.exam_id == sample_exam.id

    loaded = exam_store.load(sample_exam.id)
    assert loaded == sample_exam


def test_store_lists_newest_first(exam_store):
    now = datetime.now(timezone.utc)
    older = Exam(title="old", created_at=now - timedelta(days=1))
    newer = Exam(title="new", created_at=now)
    exam_store.save(older)
    exam_store.save(newer)

    assert [exam.title for exam in exam_store.list_exams()] == ["new", "old"]


def test_store_empty_listing(tmp_path):
    assert ExamStore(tmp_path / "missing").list_exams() == []


def test_store_missing_exam(exam_store):
    with pytest.raises(KeyError):
        exam_store.load("does-not-exist")


@pytest.mark.parametrize("exam_id", ["../secrets", "a/b", "a\\b", ""])
def test_store_rejects_path_like_ids(exam_store, exam_id):
    with pytest.raises(KeyError):
        exam_store.load(exam_id)


def test_store_save_failure_is_reported(tmp_path, sample_exam):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    result = ExamStore(blocker).save(sample_exam)

    assert not result.ok
    assert result.error


def _fake_gemini(text="  محتوى الدرس المستخرج  "):
    client = MagicMock()
    client.aio.files.upload = AsyncMock(return_value=SimpleNamespace(name="files/abc", uri="https://files/abc"))
    client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text=text))
    return client


def test_pdf_extraction_success():
    client = _fake_gemini()
    with patch("server.services.pdf_extractor.get_client", return_value=client):
        result = asyncio.run(PdfExtractor(api_key="k").extract(b"%PDF-1.4 data", "lesson.pdf"))

    assert result.ok
    assert result.text == "محتوى الدرس المستخرج"
    client.aio.files.upload.assert_awaited_once()
    assert client.aio.models.generate_content.await_args.kwargs["model"] == "gemini-2.5-flash"


def test_pdf_extraction_removes_temp_file():
    client = _fake_gemini()
    with patch("server.services.pdf_extractor.get_client", return_value=client), \
         patch("server.services.pdf_extractor.os.remove") as mock_remove:
        asyncio.run(PdfExtractor(api_key="k").extract(b"%PDF", "lesson.pdf"))

    uploaded_path = client.aio.files.upload.await_args.kwargs["file"]
    mock_remove.assert_called_once_with(uploaded_path)


def test_pdf_extraction_upstream_failure():
    client = _fake_gemini()
    client.aio.files.upload = AsyncMock(side_effect=RuntimeError("quota exceeded"))
    with patch("server.services.pdf_extractor.get_client", return_value=client):
        result = asyncio.run(PdfExtractor(api_key="k").extract(b"%PDF", "lesson.pdf"))

    assert not result.ok
    assert "quota exceeded" in result.error


def test_pdf_extraction_empty_text():
    with patch("server.services.pdf_extractor.get_client", return_value=_fake_gemini(text="   ")):
        result = asyncio.run(PdfExtractor(api_key="k").extract(b"%PDF", "lesson.pdf"))
    assert not result.ok


def test_pdf_extraction_rejects_large_file():
    result = asyncio.run(PdfExtractor(api_key="k", max_bytes=4).extract(b"%PDF-too-big"))
    assert not result.ok
    assert "ميجابايت" in result.error


def test_pdf_extraction_rejects_empty_file():
    result = asyncio.run(PdfExtractor(api_key="k").extract(b""))
    assert not result.ok


def test_store_skips_truncated_file(sample_exam, exam_store):
    exam_store.save(sample_exam)
    (exam_store.root / "partial.json").write_text('{"title": "x", "questions": [', encoding="utf-8")

    exams = exam_store.list_exams()

    assert [exam.id for exam in exams] == [sample_exam.id]


def test_store_save_leaves_only_the_exam_file(sample_exam, exam_store):
    exam_store.save(sample_exam)
    exam_store.save(sample_exam.model_copy(update={"title": "updated"}))

    assert [path.name for path in exam_store.root.iterdir()] == [f"{sample_exam.id}.json"]
    assert exam_store.load(sample_exam.id).title == "updated"
