from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from io import BytesIO
from typing import Type, TypeVar

import httpx
from PIL import Image, ImageDraw
from pydantic import BaseModel, ValidationError

from palace3d.core.errors import DeserializationError, ServiceError, raise_for_service
from palace3d.core.settings import settings
from palace3d.schemas.contracts import (
    FalImage,
    FalResultResponse,
    FalStatusResponse,
    FalSubmitResponse,
    Job,
    JobStatus,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def parse_payload(resp: httpx.Response, schema: Type[T], what: str) -> T:
    try:
        return schema.model_validate_json(resp.content)
    except ValidationError as exc:
        raise DeserializationError(f"unexpected {what} payload: {resp.text[:400]}") from exc


class ImageQueue(ABC):
    """Queued text-to-image service: submit, poll, fetch, download."""

    @abstractmethod
    async def submit(self, prompt: str) -> Job:
        raise NotImplementedError

    @abstractmethod
    async def status(self, job_id: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def result(self, job_id: str) -> FalResultResponse:
        raise NotImplementedError

    @abstractmethod
    async def download(self, url: str) -> bytes:
        raise NotImplementedError


class FalQueueClient(ImageQueue):
    service = "fal"

    def __init__(
        self,
        key: str | None = None,
        submit_url: str | None = None,
        requests_base: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.key = key if key is not None else settings.fal_key
        self.submit_url = submit_url or settings.fal_submit_url
        self.requests_base = (requests_base or settings.fal_requests_base).rstrip("/")
        self.timeout_s = timeout_s or settings.request_timeout_s
        self.transport = transport

    def _headers(self, json_body: bool = False) -> dict[str, str]:
        headers = {"Authorization": f"Key {self.key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        else:
            headers["Cache-Control"] = "no-cache"
        return headers

    def status_url(self, job_id: str) -> str:
        return f"{self.requests_base}/requests/{job_id}/status"

    def result_url(self, job_id: str) -> str:
        return f"{self.requests_base}/requests/{job_id}"

    async def _request(self, method: str, url: str, service: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ServiceError(service, str(exc)) from exc
        raise_for_service(resp, service)
        return resp

    async def submit(self, prompt: str) -> Job:
        logger.debug(f"Submitting prompt to {self.submit_url}")
        resp = await self._request(
            "POST", self.submit_url, self.service, json={"prompt": prompt}, headers=self._headers(json_body=True)
        )
        data = parse_payload(resp, FalSubmitResponse, "submission")
        if not data.request_id:
            raise DeserializationError(f"submission returned no request_id: {resp.text[:400]}")
        return Job(id=data.request_id, status=JobStatus.PENDING)

    async def status(self, job_id: str) -> str:
        resp = await self._request("GET", self.status_url(job_id), self.service, headers=self._headers())
        return parse_payload(resp, FalStatusResponse, "status").status or ""

    async def result(self, job_id: str) -> FalResultResponse:
        resp = await self._request("GET", self.result_url(job_id), self.service, headers=self._headers())
        return parse_payload(resp, FalResultResponse, "result")

    async def download(self, url: str) -> bytes:
        resp = await self._request("GET", url, "image-download", follow_redirects=True)
        return resp.content


class MockImageQueue(ImageQueue):
    def __init__(self, polls_until_complete: int = 1, width: int = 512, height: int = 512):
        self.polls_until_complete = polls_until_complete
        self.width = width
        self.height = height
        self.prompts: dict[str, str] = {}
        self.polls: dict[str, int] = {}

    async def submit(self, prompt: str) -> Job:
        job_id = f"mock-{len(self.prompts) + 1}"
        self.prompts[job_id] = prompt
        self.polls[job_id] = 0
        return Job(id=job_id)

    async def status(self, job_id: str) -> str:
        self.polls[job_id] = self.polls.get(job_id, 0) + 1
        if self.polls[job_id] >= self.polls_until_complete:
            return "COMPLETED"
        return "IN_PROGRESS"

    async def result(self, job_id: str) -> FalResultResponse:
        return FalResultResponse(
            images=[FalImage(url=f"mock://{job_id}.png", width=self.width, height=self.height)],
            prompt=self.prompts.get(job_id),
        )

    async def download(self, url: str) -> bytes:
        img = Image.new("RGB", (self.width, self.height), "white")
        draw = ImageDraw.Draw(img)
        prompt = next((p for j, p in self.prompts.items() if url.endswith(f"{j}.png")), "")
        draw.text((20, 20), f"Mock image\n{prompt[:120]}", fill="black")
        buf = BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()


def get_image_queue(name: str) -> ImageQueue:
    queues = {
        "mock": MockImageQueue,
        "fal": FalQueueClient,
    }
    return queues.get(name, MockImageQueue)()
