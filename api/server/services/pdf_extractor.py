"""
PDF Extractor Service
Extracts study text from an uploaded PDF with Google Gemini.
Failures are reported in the result, never raised.
"""
import logging
import os
import tempfile
from typing import Optional

from google import genai
from pydantic import BaseModel

from server.config import MAX_PDF_BYTES, PDF_MODEL_NAME, get_gemini_api_key, get_prompt

logger = logging.getLogger(__name__)


class ExtractionResult(BaseModel):
    """Extracted document text, or the reason there is none."""
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.text)


def get_client(api_key: Optional[str] = None) -> genai.Client:
    """
    Creates and returns a configured Gemini API client.

    Raises:
        ValueError: If API key is not configured.
    """
    resolved_key = api_key.strip() if api_key else ""
    if not resolved_key:
        resolved_key = get_gemini_api_key()
    return genai.Client(api_key=resolved_key)


async def upload_to_gemini(client: genai.Client, path: str):
    """
    Uploads a file to Gemini for processing.

    Args:
        client: Authenticated Gemini client.
        path: Absolute path to the file to upload.

    Returns:
        Uploaded file object from Gemini.
    """
    file_size = os.path.getsize(path)
    logger.info("[Extractor] Uploading file: %s (%.2f MB)", path, file_size / 1024 / 1024)
    file = await client.aio.files.upload(file=path)
    logger.info("[Extractor] Uploaded file '%s' as: %s", file.name, file.uri)
    return file


class PdfExtractor:
    """Turns PDF bytes into plain text suitable for question generation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = PDF_MODEL_NAME,
        max_bytes: int = MAX_PDF_BYTES,
    ):
        self.api_key = api_key
        self.model = model
        self.max_bytes = max_bytes

    async def extract(self, data: bytes, filename: str = "document.pdf") -> ExtractionResult:
        if not data:
            return ExtractionResult(error="Empty file")
        if len(data) > self.max_bytes:
            limit_mb = self.max_bytes // (1024 * 1024)
            return ExtractionResult(error=f"الملف كبير جداً. الحد الأقصى هو {limit_mb} ميجابايت")

        file_path = None
        try:
            with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as buffer:
                buffer.write(data)
                file_path = buffer.name

            client = get_client(self.api_key)
            gemini_file = await upload_to_gemini(client, file_path)
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[gemini_file, get_prompt("pdf_extractor")],
            )
            text = (response.text or "").strip()
            if not text:
                return ExtractionResult(error="No content extracted from PDF")
            logger.info("[Extractor] Extracted %d characters from %s", len(text), filename)
            return ExtractionResult(text=text)
        except Exception as e:
            logger.warning("[Extractor] Extraction failed for %s: %s", filename, e)
            return ExtractionResult(error=str(e))
        finally:
            if file_path and os.path.exists(file_path):
                os.remove(file_path)
