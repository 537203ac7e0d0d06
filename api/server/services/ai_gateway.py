"""
AI Gateway Service
Thin async client for an OpenAI-compatible chat-completion endpoint.
Makes exactly one attempt per call; retry policy belongs to the caller.
"""
import logging
from enum import Enum
from typing import Optional

import httpx

from server.config import AI_GATEWAY_TIMEOUT, AI_GATEWAY_URL, AI_MODELS, get_gateway_api_key

logger = logging.getLogger(__name__)


class GatewayErrorKind(str, Enum):
    """Closed set of failure kinds exposed to callers."""
    RATE_LIMITED = "rate_limited"
    PAYMENT_REQUIRED = "payment_required"
    UPSTREAM_ERROR = "upstream_error"


class GatewayError(Exception):
    """Raised when the completion endpoint does not return usable text."""

    def __init__(self, kind: GatewayErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code


def classify_status(status_code: int) -> GatewayErrorKind:
    if status_code == 429:
        return GatewayErrorKind.RATE_LIMITED
    if status_code == 402:
        return GatewayErrorKind.PAYMENT_REQUIRED
    return GatewayErrorKind.UPSTREAM_ERROR


def extract_message_content(data: dict) -> str:
    """Return choices[0].message.content, or an empty string when absent."""
    try:
        content = data["choices"][0]["message"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""
    return content if isinstance(content, str) else ""


class AIGateway:
    """Chat-completion client restricted to the allow-listed models."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = AI_GATEWAY_URL,
        timeout: float = AI_GATEWAY_TIMEOUT,
        allowed_models: frozenset = AI_MODELS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        resolved_key = api_key.strip() if api_key else ""
        self.api_key = resolved_key or get_gateway_api_key()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.allowed_models = allowed_models
        self._transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Exam Generator",
        }

    async def post_chat(self, payload: dict) -> dict:
        """
        POST a chat-completion payload and return the decoded JSON body.

        Raises:
            GatewayError: On transport failure, non-2xx status or a non-JSON body.
        """
        url = f"{self.base_url}/chat/completions"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("[Gateway] Request failed: %s", e)
            raise GatewayError(GatewayErrorKind.UPSTREAM_ERROR, f"AI request failed: {e}") from e

        if response.status_code >= 400:
            kind = classify_status(response.status_code)
            logger.error("[Gateway] AI API error: %s %s", response.status_code, response.text[:500])
            raise GatewayError(kind, f"AI API error: {response.status_code}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(
                GatewayErrorKind.UPSTREAM_ERROR, "AI API returned a non-JSON body", response.status_code
            ) from e

    async def complete(self, system_prompt: str, user_prompt: str, model: str) -> str:
        """
        Run one chat completion and return the generated text.

        Raises:
            ValueError: If the model is not allow-listed.
            GatewayError: On any failure, including an empty completion.
        """
        if model not in self.allowed_models:
            raise ValueError(f"Model '{model}' is not allowed")

        data = await self.post_chat({
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        })
        content = extract_message_content(data)
        if not content.strip():
            raise GatewayError(GatewayErrorKind.UPSTREAM_ERROR, "AI API returned an empty completion")
        return content
