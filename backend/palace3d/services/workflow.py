"""Capture -> caption -> image -> 3D model -> saved GLB -> loaded asset.

Each stage awaits the previous one; the first failure ends the run. Only the
status poll against the image queue is retried, and only up to its cap.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from palace3d.core.errors import MissingInputError, ServiceError, WorkflowError
from palace3d.core.settings import settings
from palace3d.schemas.contracts import WorkflowResult, WorkflowStage
from palace3d.services.asset_loader import AssetLoader, GlbAssetLoader
from palace3d.services.capture import CaptureSource, to_readable_png
from palace3d.services.captioning import CaptionProvider, get_caption_provider
from palace3d.services.image_providers import ImageQueue, get_image_queue
from palace3d.services.jobs import Sleep, poll_until_complete
from palace3d.services.model_providers import ModelProvider, get_model_provider
from palace3d.services.model_store import ModelStore

logger = logging.getLogger(__name__)

CaptionSink = Callable[[str], None]


class WorkflowOrchestrator:
    def __init__(
        self,
        capture: CaptureSource,
        captioner: CaptionProvider,
        image_queue: ImageQueue,
        model_provider: ModelProvider,
        store: ModelStore,
        loader: AssetLoader,
        *,
        caption_sink: Optional[CaptionSink] = None,
        instruction: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
        poll_interval_s: Optional[float] = None,
        poll_max_attempts: Optional[int] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.capture = capture
        self.captioner = captioner
        self.image_queue = image_queue
        self.model_provider = model_provider
        self.store = store
        self.loader = loader
        self.caption_sink = caption_sink
        self.instruction = instruction or settings.caption_instruction
        self.clock = clock
        self.poll_interval_s = poll_interval_s
        self.poll_max_attempts = poll_max_attempts
        self.sleep = sleep

    async def run(self, run_id: Optional[str] = None) -> WorkflowResult:
        result = WorkflowResult(run_id=run_id or uuid.uuid4().hex[:12], started_at=self.clock())
        logger.info(f"Run {result.run_id} started")
        try:
            await self._run_stages(result)
        except WorkflowError as exc:
            result.error_kind = exc.kind
            result.error = str(exc)
            logger.error(f"Run {result.run_id} aborted at {result.stage.value} ({exc.kind}): {exc}")
        result.finished_at = self.clock()
        return result

    async def _run_stages(self, result: WorkflowResult) -> None:
        result.stage = WorkflowStage.CAPTURE
        raw = self.capture.latest_frame()
        if not raw:
            raise MissingInputError("No screen capture frame available.")
        image_png = await asyncio.to_thread(to_readable_png, raw)

        result.stage = WorkflowStage.CAPTION
        caption = (await self.captioner.caption(image_png, self.instruction) or "").strip()
        if not caption:
            raise ServiceError("caption", "captioning returned an empty result")
        result.caption = caption
        logger.info(f"Caption: {caption}")
        if self.caption_sink is not None:
            self.caption_sink(caption)

        result.stage = WorkflowStage.SUBMIT
        job = await self.image_queue.submit(caption)
        result.job = job
        logger.info(f"Image request id: {job.id}")

        result.stage = WorkflowStage.POLL
        await poll_until_complete(
            self.image_queue,
            job,
            interval_s=self.poll_interval_s,
            max_attempts=self.poll_max_attempts,
            sleep=self.sleep,
        )

        result.stage = WorkflowStage.FETCH
        payload = await self.image_queue.result(job.id)
        if not payload.images:
            raise ServiceError("fal", "job completed without any images")
        job.image_urls = [img.url for img in payload.images]
        image_url = job.image_urls[0]
        logger.info(f"Generated image URL: {image_url}")
        image_bytes = await self.image_queue.download(image_url)

        result.stage = WorkflowStage.GENERATE_3D
        glb_bytes = await self.model_provider.generate(image_bytes, self.clock())

        result.stage = WorkflowStage.PERSIST
        asset = await asyncio.to_thread(self.store.save, glb_bytes, self.clock())
        result.asset = asset

        result.stage = WorkflowStage.LOAD
        result.loaded = await asyncio.to_thread(self.loader.load, asset.path)
        logger.info(f"3D model loaded successfully from: {asset.path}")

        result.stage = WorkflowStage.DONE
        result.ok = True


def build_orchestrator(
    capture: CaptureSource,
    caption_sink: Optional[CaptionSink] = None,
    *,
    caption_provider: Optional[str] = None,
    image_provider: Optional[str] = None,
    mesh_provider: Optional[str] = None,
) -> WorkflowOrchestrator:
    """Wire an orchestrator; provider names not given come from settings."""
    return WorkflowOrchestrator(
        capture=capture,
        captioner=get_caption_provider(caption_provider or settings.caption_provider),
        image_queue=get_image_queue(image_provider or settings.image_provider),
        model_provider=get_model_provider(mesh_provider or settings.mesh_provider),
        store=ModelStore(),
        loader=GlbAssetLoader(),
        caption_sink=caption_sink,
    )
