from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime

import httpx

from palace3d.core.errors import ServiceError
from palace3d.core.settings import settings
from palace3d.utils.glb import placeholder_glb
from palace3d.utils.timestamps import upload_file_name

logger = logging.getLogger(__name__)


class ModelProvider(ABC):
    @abstractmethod
    async def generate(self, image_bytes: bytes, now: datetime | None = None) -> bytes:
        raise NotImplementedError


class MockModelProvider(ModelProvider):
    async def generate(self, image_bytes: bytes, now: datetime | None = None) -> bytes:
        return placeholder_glb()


class StableFast3DProvider(ModelProvider):
    service = "stability"

    def __init__(
        self,
        api_key: str | None = None,
        url: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.stability_api_key
        self.url = url or settings.stability_3d_url
        self.timeout_s = timeout_s or settings.request_timeout_s
        self.transport = transport

    async def generate(self, image_bytes: bytes, now: datetime | None = None) -> bytes:
        files = {"image": (upload_file_name(now), image_bytes, "image/png")}
        headers = {"authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                resp = await client.post(self.url, files=files, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"Error calling StabilityAI for 3D model: {exc}")
            raise ServiceError(self.service, str(exc)) from exc

        if not resp.is_success:
            body = resp.text
            logger.error(f"Error response from StabilityAI: {body}")
            raise ServiceError(self.service, "3D generation failed", status=resp.status_code, body=body)

        logger.info("3D model generated from StabilityAI.")
        return resp.content


def get_model_provider(name: str) -> ModelProvider:
    providers = {
        "mock": MockModelProvider,
        "stability": StableFast3DProvider,
    }
    return providers.get(name, MockModelProvider)()
