from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod

import httpx

from palace3d.core.errors import DeserializationError, ServiceError, raise_for_service
from palace3d.core.settings import settings

logger = logging.getLogger(__name__)


class CaptionProvider(ABC):
    @abstractmethod
    async def caption(self, image_png: bytes, instruction: str) -> str:
        raise NotImplementedError


class MockCaptionProvider(CaptionProvider):
    def __init__(self, text: str = "a plain grey cube on a white pedestal"):
        self.text = text

    async def caption(self, image_png: bytes, instruction: str) -> str:
        return self.text


class GeminiCaptionProvider(CaptionProvider):
    service = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        endpoint: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.endpoint = (endpoint or settings.gemini_endpoint).format(model=self.model)
        self.timeout_s = timeout_s or settings.request_timeout_s
        self.transport = transport

    def build_payload(self, image_png: bytes, instruction: str) -> dict:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": instruction},
                        {
                            "inline_data": {
                                "mime_type": "image/png",
                                "data": base64.b64encode(image_png).decode("ascii"),
                            }
                        },
                    ]
                }
            ]
        }

    async def caption(self, image_png: bytes, instruction: str) -> str:
        if not self.api_key:
            raise ServiceError(self.service, "gemini_api_key is not configured")
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                resp = await client.post(self.endpoint, json=self.build_payload(image_png, instruction), headers=headers)
        except httpx.HTTPError as exc:
            raise ServiceError(self.service, str(exc)) from exc
        raise_for_service(resp, self.service)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise DeserializationError(f"gemini returned non-JSON response: {resp.text[:400]}") from exc
        text = extract_caption(payload)
        if not text:
            raise ServiceError(self.service, "empty caption")
        return text


def extract_caption(payload: dict) -> str:
    """Concatenated text parts of the first candidate; "" when there is none.

    Candidates that do not have the documented shape raise
    ``DeserializationError``.
    """
    candidates = payload.get("candidates") if isinstance(payload, dict) else None
    if not candidates:
        return ""
    if not isinstance(candidates, list) or not isinstance(candidates[0], dict):
        raise DeserializationError(f"unexpected gemini candidates: {str(candidates)[:400]}")
    content = candidates[0].get("content") or {}
    if not isinstance(content, dict):
        raise DeserializationError(f"unexpected gemini candidate content: {str(content)[:400]}")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise DeserializationError(f"unexpected gemini content parts: {str(parts)[:400]}")
    texts = [str(p.get("text", "")) for p in parts if isinstance(p, dict)]
    return "".join(texts).strip()


def get_caption_provider(name: str) -> CaptionProvider:
    providers = {
        "mock": MockCaptionProvider,
        "gemini": GeminiCaptionProvider,
    }
    return providers.get(name, MockCaptionProvider)()
