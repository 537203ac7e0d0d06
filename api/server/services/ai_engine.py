"""
AI Engine Service
Drives one exam generation run: document analysis, question generation,
quality check, selective regeneration, diagram augmentation and persistence.
"""
import logging
import math
import random
from typing import Awaitable, Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from server.config import (
    DIAGRAM_TRIGGER_PHRASES,
    ERROR_MESSAGES,
    PARSE_RETRIES,
    REGENERATION_MAX_ITEMS,
    STRICT_JSON_REMINDER,
)
from server.schemas import (
    Exam,
    ExamConfig,
    GenerationConfig,
    GenerationProgress,
    ProgressStep,
    Question,
    SourceType,
    new_id,
)
from server.services.ai_gateway import GatewayError
from server.services.diagram_client import DiagramResult
from server.services.exam_store import ExamStore
from server.services.image_selector import select_image_indices
from server.services.pdf_extractor import PdfExtractor
from server.services.prompt_builder import build_generation_prompt
from server.services.quality import evaluate_questions
from server.services.question_normalizer import normalize_questions
from server.services.regeneration import regenerate_questions
from server.services.response_parser import MalformedResponse, parse_question_array

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[GenerationProgress], None]
DiagramGenerator = Callable[[str, str, str], Awaitable[DiagramResult]]


class GenerationResult(BaseModel):
    """Either a finished exam or an error message, plus the progress trail."""
    exam: Optional[Exam] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    progress: List[GenerationProgress] = Field(default_factory=list)
    notices: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exam is not None


class ProgressTracker:
    """Records progress updates and forwards them to an optional callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.current = GenerationProgress()
        self.history: List[GenerationProgress] = []

    def update(self, step: ProgressStep, message: str, progress: int) -> None:
        # Percentage never goes backwards, even on error
        self.current = GenerationProgress(
            step=step, message=message, progress=max(self.current.progress, min(progress, 100))
        )
        self.history.append(self.current)
        if self.callback is not None:
            self.callback(self.current)


def reindex_questions(questions: Sequence[Question]) -> List[Question]:
    """Reassign question indexes sequentially from 1..N."""
    return [question.model_copy(update={"index": index}) for index, question in enumerate(questions, start=1)]


def should_regenerate(weak_count: int, total: int, max_items: int = REGENERATION_MAX_ITEMS) -> bool:
    """Only regenerate a small minority of the exam."""
    return 0 < weak_count <= max_items and weak_count <= math.ceil(total / 2)


async def generate_questions(
    gateway,
    exam: ExamConfig,
    config: GenerationConfig,
    source_text: Optional[str] = None,
    parse_retries: int = PARSE_RETRIES,
) -> List[Question]:
    """
    Run the generation call and normalize the returned array.

    Gateway errors propagate untouched. A malformed response is retried
    parse_retries times with a strict JSON reminder, then re-raised.

    Raises:
        GatewayError: If the completion call fails.
        MalformedResponse: If no question array can be parsed.
    """
    attempts = parse_retries + 1
    for attempt in range(attempts):
        prompts = build_generation_prompt(
            exam, config, source_text, strict_json=STRICT_JSON_REMINDER if attempt else None
        )
        content = await gateway.complete(prompts.system, prompts.user, config.ai_model)
        try:
            raw_items = parse_question_array(content)
        except MalformedResponse as e:
            logger.error("[Generator] Parse error (attempt %d/%d): %s | content: %s",
                         attempt + 1, attempts, e, content[:500])
            if attempt + 1 >= attempts:
                raise
            continue
        logger.info("[Generator] Generated %d initial questions", len(raw_items))
        return normalize_questions(raw_items)
    return []


class GenerationOrchestrator:
    """
    Sequential pipeline for one generation request.

    Collaborators are injected so each can be replaced in tests:
        gateway: async complete(system, user, model) -> str
        diagram_generator: async (text, exam_id, question_id) -> DiagramResult
        pdf_extractor: PdfExtractor-like object with async extract(data, filename)
        store: ExamStore-like object with save(exam) -> SaveResult
    """

    def __init__(
        self,
        gateway,
        diagram_generator: Optional[DiagramGenerator] = None,
        pdf_extractor: Optional[PdfExtractor] = None,
        store: Optional[ExamStore] = None,
        rng: Optional[random.Random] = None,
        parse_retries: int = PARSE_RETRIES,
        regeneration_max_items: int = REGENERATION_MAX_ITEMS,
        trigger_phrases: Sequence[str] = DIAGRAM_TRIGGER_PHRASES,
    ):
        self.gateway = gateway
        self.diagram_generator = diagram_generator
        self.pdf_extractor = pdf_extractor
        self.store = store
        self.rng = rng or random.Random()
        self.parse_retries = parse_retries
        self.regeneration_max_items = regeneration_max_items
        self.trigger_phrases = trigger_phrases

    async def run(
        self,
        exam_config: ExamConfig,
        config: GenerationConfig,
        document: Optional[bytes] = None,
        filename: str = "document.pdf",
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationResult:
        tracker = ProgressTracker(on_progress)
        notices: List[str] = []
        exam_id = new_id()

        source_text = None
        if document and config.source_type in (SourceType.PDF, SourceType.BOTH):
            tracker.update(ProgressStep.ANALYZING, "جاري تحليل المحتوى...", 10)
            source_text = await self._extract(document, filename, notices)

        tracker.update(ProgressStep.GENERATING, "جاري توليد الأسئلة...", 30)
        try:
            questions = await generate_questions(
                self.gateway, exam_config, config, source_text, self.parse_retries
            )
        except GatewayError as e:
            logger.error("[Generator] Generation failed (%s): %s", e.kind.value, e.message)
            return self._fail(tracker, e.kind.value, notices)
        except MalformedResponse:
            return self._fail(tracker, "malformed", notices)

        if not questions:
            logger.error("[Generator] Model returned an empty question array")
            return self._fail(tracker, "malformed", notices)

        requested = config.question_count
        if len(questions) < requested:
            notices.append(f"تم توليد {len(questions)} من أصل {requested} سؤال.")
        questions = reindex_questions(questions[:requested])

        if config.enable_quality_check:
            questions = await self._quality_pass(questions, exam_config, config, tracker, notices)

        if config.generate_images:
            await self._attach_images(questions, config, exam_id, tracker, notices)

        tracker.update(ProgressStep.EXCEL, "جاري إنشاء ملف الاختبار وحفظه...", 90)
        exam = Exam(id=exam_id, questions=reindex_questions(questions), **exam_config.model_dump())
        if self.store is not None:
            saved = self.store.save(exam)
            if not saved.ok:
                logger.warning("[Store] Exam %s kept in memory only: %s", exam.id, saved.error)
                notices.append("تعذر حفظ الاختبار، يمكنك تصديره الآن.")

        tracker.update(ProgressStep.COMPLETE, "تم توليد الاختبار بنجاح!", 100)
        logger.info("[Generator] Final: %d questions", len(exam.questions))
        return GenerationResult(exam=exam, progress=tracker.history, notices=notices)

    async def _extract(self, document: bytes, filename: str, notices: List[str]) -> Optional[str]:
        if self.pdf_extractor is None:
            notices.append("قراءة ملفات PDF غير متاحة، تم الاعتماد على الوصف فقط.")
            return None
        result = await self.pdf_extractor.extract(document, filename)
        if result.ok:
            return result.text
        logger.warning("[Extractor] Continuing without document text: %s", result.error)
        notices.append("تعذر قراءة ملف PDF، تم الاعتماد على الوصف فقط.")
        return None

    async def _quality_pass(
        self,
        questions: List[Question],
        exam_config: ExamConfig,
        config: GenerationConfig,
        tracker: ProgressTracker,
        notices: List[str],
    ) -> List[Question]:
        tracker.update(ProgressStep.QUALITY_CHECK, "جاري فحص جودة الأسئلة...", 55)
        report = evaluate_questions(questions)
        for question, score in zip(questions, report.scores):
            question.quality_score = score

        weak = report.weak_indices
        logger.info("[Quality] Weak questions (score < threshold): %d", len(weak))
        if not weak:
            return questions
        if not should_regenerate(len(weak), len(questions), self.regeneration_max_items):
            logger.info("[Quality] Skipping regeneration of %d/%d questions", len(weak), len(questions))
            notices.append(f"{len(weak)} أسئلة بجودة منخفضة لم يُعَد توليدها.")
            return questions

        tracker.update(ProgressStep.REGENERATING, "جاري إعادة توليد الأسئلة الضعيفة...", 60)
        improved = await regenerate_questions(
            self.gateway,
            [questions[position] for position in weak],
            exam_config,
            config.ai_model,
            config.custom_prompt,
        )
        for position, replacement in zip(weak, improved):
            questions[position] = replacement
        return questions

    async def _attach_images(
        self,
        questions: List[Question],
        config: GenerationConfig,
        exam_id: str,
        tracker: ProgressTracker,
        notices: List[str],
    ) -> None:
        tracker.update(ProgressStep.IMAGES, "جاري توليد الصور ورفعها...", 70)
        if self.diagram_generator is None:
            notices.append("توليد الصور غير متاح حالياً.")
            return

        positions = select_image_indices(questions, config, self.rng, self.trigger_phrases)
        failed = 0
        for done, position in enumerate(positions, start=1):
            question = questions[position]
            result = await self.diagram_generator(question.text, exam_id, question.id)
            if result.ok:
                question.image_url = result.image_url
            else:
                failed += 1
            tracker.update(
                ProgressStep.IMAGES,
                f"جاري توليد الصور ({done}/{len(positions)})...",
                70 + (15 * done) // len(positions),
            )
        if failed:
            logger.warning("[Images] %d of %d diagrams failed", failed, len(positions))
            notices.append(f"تعذر توليد {failed} من الصور.")

    @staticmethod
    def _fail(tracker: ProgressTracker, kind: str, notices: List[str]) -> GenerationResult:
        message = ERROR_MESSAGES[kind]
        tracker.update(ProgressStep.ERROR, message, tracker.current.progress)
        return GenerationResult(error=message, error_kind=kind, progress=tracker.history, notices=notices)
