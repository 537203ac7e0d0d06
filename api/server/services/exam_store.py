"""
Exam Store Service
Persists finished exams as JSON files under a data directory.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ValidationError

from server.schemas import Exam

logger = logging.getLogger(__name__)


class SaveResult(BaseModel):
    """Outcome of a save; failures carry an error instead of raising."""
    exam_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exam_id is not None


class ExamStore:
    """One JSON document per exam, named by exam id."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, exam_id: str) -> Path:
        # Ids are uuid strings; anything else cannot name a stored exam
        if not exam_id or any(sep in exam_id for sep in ("/", "\\", "..")):
            raise KeyError(exam_id)
        return self.root / f"{exam_id}.json"

    def _write_atomic(self, path: Path, payload: str) -> None:
        # Readers only ever see the previous file or the complete new one
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".part")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as buffer:
                buffer.write(payload)
            os.replace(tmp_name, path)
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)

    def save(self, exam: Exam) -> SaveResult:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._write_atomic(self._path(exam.id), exam.model_dump_json(indent=2))
        except (OSError, KeyError) as e:
            logger.error("[Store] Failed to save exam %s: %s", exam.id, e)
            return SaveResult(error=str(e))
        logger.info("[Store] Saved exam %s (%d questions)", exam.id, len(exam.questions))
        return SaveResult(exam_id=exam.id)

    def load(self, exam_id: str) -> Exam:
        """
        Raises:
            KeyError: If no exam with this id is stored.
        """
        path = self._path(exam_id)
        if not path.exists():
            raise KeyError(exam_id)
        return Exam.model_validate_json(path.read_text(encoding="utf-8"))

    def list_exams(self) -> List[Exam]:
        """Stored exams, newest first. Unreadable files are skipped."""
        if not self.root.exists():
            return []
        exams = []
        for path in self.root.glob("*.json"):
            try:
                exams.append(Exam.model_validate_json(path.read_text(encoding="utf-8")))
            except (OSError, ValidationError) as e:
                logger.warning("[Store] Skipping unreadable exam file %s: %s", path.name, e)
        return sorted(exams, key=lambda exam: exam.created_at, reverse=True)
