"""
Data Schemas for Exam Gen
Pydantic models for type-safe data validation across the application.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from server.config import AI_MODELS, DEFAULT_AI_MODEL


def new_id() -> str:
    return str(uuid.uuid4())


class Difficulty(str, Enum):
    """Difficulty level of a single question."""
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class DifficultyMode(str, Enum):
    """How difficulty is distributed across the exam."""
    ALL_EASY = "all-easy"
    ALL_MEDIUM = "all-medium"
    ALL_HARD = "all-hard"
    MIXED = "mixed"


class ImageMode(str, Enum):
    AUTO = "auto"
    PERCENTAGE = "percentage"


class SourceType(str, Enum):
    DESCRIPTION = "description"
    PDF = "pdf"
    BOTH = "both"


class ProgressStep(str, Enum):
    """Steps of a single generation run."""
    IDLE = "idle"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    QUALITY_CHECK = "quality-check"
    REGENERATING = "regenerating"
    IMAGES = "images"
    EXCEL = "excel"
    COMPLETE = "complete"
    ERROR = "error"


class Question(BaseModel):
    """Represents a single multiple-choice question."""
    id: str = Field(default_factory=new_id, description="Opaque unique identifier")
    index: int = Field(..., ge=1, description="1-based position within the exam")
    text: str = Field("", description="The question text")
    option_a: str = Field("", description="Option A (أ)")
    option_b: str = Field("", description="Option B (ب)")
    option_c: str = Field("", description="Option C (ج)")
    option_d: str = Field("", description="Option D (د)")
    # Kept as plain text: an invalid label is a quality defect, not a parse error
    correct_option: str = Field("A", description="One of A, B, C, D")
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description="Question difficulty")
    mark: int = Field(2, ge=1, description="Marks awarded for this question")
    explanation: Optional[str] = Field(None, description="Why the correct option is correct")
    image_url: Optional[str] = Field(None, description="Attached diagram URL")
    needs_image: Optional[bool] = Field(None, description="Generator hint that a diagram is warranted")
    quality_score: Optional[int] = Field(None, ge=1, le=10, description="Heuristic quality score")

    @property
    def options(self) -> List[str]:
        return [self.option_a, self.option_b, self.option_c, self.option_d]


class ExamConfig(BaseModel):
    """Exam metadata collected from the form."""
    title: str = Field(..., description="Exam title")
    description: str = Field("", description="Free-text content description")
    subject: str = Field("", description="Subject name")
    grade: str = Field("", description="Grade or education level")
    duration_minutes: int = Field(60, ge=1, description="Exam duration in minutes")
    passing_percent: int = Field(50, ge=0, le=100, description="Minimum passing percentage")


class DifficultySettings(BaseModel):
    """Difficulty mode and, for mixed mode, the percentage split."""
    mode: DifficultyMode
    easy_percent: Optional[int] = Field(None, ge=0, le=100)
    medium_percent: Optional[int] = Field(None, ge=0, le=100)
    hard_percent: Optional[int] = Field(None, ge=0, le=100)

    @model_validator(mode="after")
    def _check_mixed_total(self) -> "DifficultySettings":
        if self.mode == DifficultyMode.MIXED:
            parts = (self.easy_percent, self.medium_percent, self.hard_percent)
            if any(part is None for part in parts):
                raise ValueError("mixed difficulty requires easy, medium and hard percentages")
            if sum(parts) != 100:
                raise ValueError("difficulty percentages must total 100")
        return self


class GenerationConfig(BaseModel):
    """Settings that drive a single generation run."""
    question_count: int = Field(10, ge=1, le=100)
    difficulty: DifficultySettings = Field(
        default_factory=lambda: DifficultySettings(
            mode=DifficultyMode.MIXED, easy_percent=33, medium_percent=34, hard_percent=33
        )
    )
    generate_images: bool = False
    image_mode: ImageMode = ImageMode.AUTO
    image_percentage: int = Field(30, ge=1, le=100)
    source_type: SourceType = SourceType.DESCRIPTION
    custom_prompt: Optional[str] = None
    enable_quality_check: bool = True
    ai_model: str = DEFAULT_AI_MODEL

    @model_validator(mode="after")
    def _check_model(self) -> "GenerationConfig":
        if self.ai_model not in AI_MODELS:
            raise ValueError(f"Unsupported ai_model '{self.ai_model}'")
        return self


class Exam(ExamConfig):
    """A generated exam: metadata plus ordered questions."""
    id: str = Field(default_factory=new_id)
    questions: List[Question] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_marks(self) -> int:
        return sum(question.mark for question in self.questions)


class GenerationProgress(BaseModel):
    """Transient progress value reported to the caller."""
    step: ProgressStep = ProgressStep.IDLE
    message: str = ""
    progress: int = Field(0, ge=0, le=100)


class PromptPair(BaseModel):
    system: str
    user: str


class QualityReport(BaseModel):
    """Result of a heuristic quality pass."""
    scores: List[int] = Field(default_factory=list)
    weak_indices: List[int] = Field(default_factory=list)
