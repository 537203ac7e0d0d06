"""
Main FastAPI Application
Controller layer that wires the generation pipeline, persistence and exports.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import ValidationError

from server.config import AI_MODELS, DEFAULT_AI_MODEL, MAX_PDF_BYTES
from server.schemas import DifficultySettings, ExamConfig, GenerationConfig, SourceType
from server.services.ai_engine import GenerationOrchestrator
from server.services.ai_gateway import AIGateway
from server.services.diagram_client import DiagramClient
from server.services.doc_generator import generate_docx
from server.services.exam_store import ExamStore
from server.services.excel_export import generate_xlsx
from server.services.pdf_extractor import PdfExtractor

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)s  %(name)s  %(message)s")
logger = logging.getLogger(__name__)

# Setup Paths
BASE_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = Path(os.getenv("EXAM_GEN_DATA_DIR", BASE_DIR / "data"))
OUTPUT_DIR = BASE_DIR / "output"

ERROR_STATUS = {
    "rate_limited": 429,
    "payment_required": 402,
    "upstream_error": 502,
    "malformed": 502,
}

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def get_runtime_output_dir() -> Path:
    """Resolve output directory for local dev or serverless runtime."""
    if os.getenv("VERCEL"):
        return Path(tempfile.gettempdir()) / "exam-gen-output"
    return OUTPUT_DIR


def get_exam_store() -> ExamStore:
    return ExamStore(DATA_DIR / "exams")


def get_gemini_key_header(
    x_gemini_api_key: Optional[str] = Header(default=None, alias="X-Gemini-API-Key"),
) -> Optional[str]:
    return x_gemini_api_key


def get_orchestrator(
    gemini_key: Optional[str] = Depends(get_gemini_key_header),
    store: ExamStore = Depends(get_exam_store),
) -> GenerationOrchestrator:
    try:
        gateway = AIGateway()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=f"Configuration error: {str(e)}")
    return GenerationOrchestrator(
        gateway=gateway,
        diagram_generator=DiagramClient(gateway).generate,
        pdf_extractor=PdfExtractor(api_key=gemini_key),
        store=store,
    )


# Initialize FastAPI App
app = FastAPI(
    title="Exam Gen API",
    description="AI-powered multiple-choice exam generation from text or PDF",
    version="2.0.0"
)

# CORS Middleware (Allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def read_root():
    """Return API status info."""
    return {"message": "Exam Gen API is running."}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "Exam Gen API"}


@app.get("/api/models")
async def list_models():
    return {"models": sorted(AI_MODELS), "default": DEFAULT_AI_MODEL}


@app.post("/api/generate")
async def generate_exam(
    file: Optional[UploadFile] = File(None, description="Optional PDF source document"),
    title: str = Form(..., description="Exam title"),
    description: str = Form(default="", description="Content description or notes"),
    subject: str = Form(default=""),
    grade: str = Form(default=""),
    duration_minutes: int = Form(default=60),
    passing_percent: int = Form(default=50),
    question_count: int = Form(default=10, description="Number of questions (1-100)"),
    difficulty_mode: str = Form(default="mixed", description="all-easy, all-medium, all-hard or mixed"),
    easy_percent: Optional[int] = Form(default=33),
    medium_percent: Optional[int] = Form(default=34),
    hard_percent: Optional[int] = Form(default=33),
    generate_images: bool = Form(default=False),
    image_mode: str = Form(default="auto", description="auto or percentage"),
    image_percentage: int = Form(default=30),
    source_type: str = Form(default="description", description="description, pdf or both"),
    custom_prompt: Optional[str] = Form(default=None),
    enable_quality_check: bool = Form(default=True),
    ai_model: str = Form(default=DEFAULT_AI_MODEL),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Generate a multiple-choice exam.

    Returns:
        JSON with the exam, the progress trail, advisory notices and export URLs.
    """
    # 1. Validate inputs
    try:
        exam_config = ExamConfig(
            title=title.strip(),
            description=description,
            subject=subject,
            grade=grade,
            duration_minutes=duration_minutes,
            passing_percent=passing_percent,
        )
        generation_config = GenerationConfig(
            question_count=question_count,
            difficulty=DifficultySettings(
                mode=difficulty_mode,
                easy_percent=easy_percent,
                medium_percent=medium_percent,
                hard_percent=hard_percent,
            ),
            generate_images=generate_images,
            image_mode=image_mode,
            image_percentage=image_percentage,
            source_type=source_type,
            custom_prompt=custom_prompt,
            enable_quality_check=enable_quality_check,
            ai_model=ai_model,
        )
    except ValidationError as e:
        # Inputs may hold nested model instances that are not JSON-encodable
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )

    if not exam_config.title:
        raise HTTPException(status_code=422, detail="title is required")

    document = None
    if file is not None and generation_config.source_type != SourceType.DESCRIPTION:
        document = await file.read()
        if len(document) > MAX_PDF_BYTES:
            raise HTTPException(status_code=422, detail="PDF file is too large (max 10 MB)")

    if not exam_config.description.strip() and not document:
        raise HTTPException(status_code=422, detail="description or file is required")

    # 2. Run the pipeline
    result = await orchestrator.run(
        exam_config,
        generation_config,
        document=document,
        filename=file.filename if file is not None else "document.pdf",
    )

    if not result.ok:
        raise HTTPException(status_code=ERROR_STATUS.get(result.error_kind, 500), detail=result.error)

    exam = result.exam
    return {
        "status": "success",
        "message": "Exam generated successfully",
        "exam": exam.model_dump(mode="json"),
        "progress": [step.model_dump(mode="json") for step in result.progress],
        "notices": result.notices,
        "requested_count": generation_config.question_count,
        "total_generated": len(exam.questions),
        "download_urls": {
            "docx": f"/api/exams/{exam.id}/export/docx",
            "xlsx": f"/api/exams/{exam.id}/export/xlsx",
        },
    }


def _load_exam(store: ExamStore, exam_id: str):
    try:
        return store.load(exam_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Exam not found")


@app.get("/api/exams")
async def list_exams(store: ExamStore = Depends(get_exam_store)):
    return {
        "exams": [
            {
                "id": exam.id,
                "title": exam.title,
                "subject": exam.subject,
                "question_count": len(exam.questions),
                "created_at": exam.created_at.isoformat(),
            }
            for exam in store.list_exams()
        ]
    }


@app.get("/api/exams/{exam_id}")
async def get_exam(exam_id: str, store: ExamStore = Depends(get_exam_store)):
    return _load_exam(store, exam_id).model_dump(mode="json")


@app.get("/api/exams/{exam_id}/export/{fmt}")
async def export_exam(exam_id: str, fmt: str, store: ExamStore = Depends(get_exam_store)):
    """Render a stored exam to DOCX or XLSX and return the file."""
    if fmt not in {"docx", "xlsx"}:
        raise HTTPException(status_code=404, detail="Unknown export format")
    exam = _load_exam(store, exam_id)

    output_filename = f"exam_{exam.id[:8]}_{os.urandom(4).hex()}.{fmt}"
    runtime_output_dir = get_runtime_output_dir()
    runtime_output_dir.mkdir(parents=True, exist_ok=True)
    output_path = runtime_output_dir / output_filename

    if fmt == "docx":
        generate_docx(exam, str(output_path))
        media_type = DOCX_MEDIA_TYPE
    else:
        generate_xlsx(exam, str(output_path))
        media_type = XLSX_MEDIA_TYPE

    return FileResponse(str(output_path), filename=output_filename, media_type=media_type)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
