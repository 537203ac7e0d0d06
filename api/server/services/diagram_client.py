"""
Diagram Client Service
Requests an illustrative diagram for one question from an image-capable model.
"""
import logging
from typing import Optional

from pydantic import BaseModel

from server.config import DIAGRAM_MODEL_NAME, get_prompt
from server.services.ai_gateway import AIGateway, GatewayError
from server.services.text_cleaner import normalize_text

logger = logging.getLogger(__name__)


class DiagramResult(BaseModel):
    """Outcome of one diagram request; failures carry an error instead of raising."""
    image_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.image_url)


def extract_image_url(data: dict) -> Optional[str]:
    """Read the image from either the images payload or a data-URL content string."""
    try:
        message = data["choices"][0]["message"]
        images = message.get("images") or []
        url = (images[0].get("image_url") or {}).get("url") if images else None
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    if url:
        return url
    content = message.get("content")
    if isinstance(content, str) and content.startswith("data:image"):
        return content
    return None


class DiagramClient:
    """Single-attempt diagram generator that never raises."""

    def __init__(self, gateway: AIGateway, model: str = DIAGRAM_MODEL_NAME):
        self.gateway = gateway
        self.model = model

    async def generate(self, question_text: str, exam_id: str, question_id: str) -> DiagramResult:
        text = normalize_text(question_text)
        logger.info("[Images] Generating diagram for %s/%s: %s", exam_id, question_id, text[:100])
        payload = {
            "model": self.model,
            "max_tokens": 4000,
            "messages": [{"role": "user", "content": get_prompt("diagram", question_text=text)}],
        }
        try:
            data = await self.gateway.post_chat(payload)
        except GatewayError as e:
            logger.warning("[Images] Diagram request failed for %s: %s", question_id, e)
            return DiagramResult(error=e.message)

        image_url = extract_image_url(data)
        if not image_url:
            logger.warning("[Images] No image returned for %s", question_id)
            return DiagramResult(error="No image in response")
        return DiagramResult(image_url=image_url)
