import asyncio
from pathlib import Path

from fakes import FIXED_NOW, FakeCaptioner, FakeModelProvider, FakeQueue, RecordingSleep
from palace3d.core.errors import DeserializationError, ServiceError
from palace3d.core.settings import settings
from palace3d.schemas.contracts import JobStatus, WorkflowStage
from palace3d.services.asset_loader import GlbAssetLoader
from palace3d.services.capture import BytesCaptureSource, PlaceholderCaptureSource
from palace3d.services.captioning import GeminiCaptionProvider, MockCaptionProvider
from palace3d.services.image_providers import MockImageQueue
from palace3d.services.model_providers import MockModelProvider
from palace3d.services.model_store import ModelStore
from palace3d.services.workflow import WorkflowOrchestrator, build_orchestrator


def _orchestrator(tmp_path: Path, *, capture=None, captioner=None, queue=None, provider=None, sleep=None, sink=None):
    return WorkflowOrchestrator(
        capture=capture or PlaceholderCaptureSource(size=16),
        captioner=captioner or FakeCaptioner("a red mug"),
        image_queue=queue or FakeQueue(),
        model_provider=provider or FakeModelProvider(),
        store=ModelStore(tmp_path / "3DModels"),
        loader=GlbAssetLoader(),
        caption_sink=sink,
        clock=lambda: FIXED_NOW,
        poll_interval_s=2.0,
        poll_max_attempts=30,
        sleep=sleep or RecordingSleep(),
    )


def test_full_run_saves_and_loads_model(tmp_path: Path):
    queue = FakeQueue(statuses=["IN_QUEUE", "IN_PROGRESS", "COMPLETED"])
    provider = FakeModelProvider()
    sleep = RecordingSleep()
    shown = []

    result = asyncio.run(_orchestrator(tmp_path, queue=queue, provider=provider, sleep=sleep, sink=shown.append).run("r1"))

    expected = tmp_path / "3DModels" / "3d_model_20240101_120000.glb"
    assert result.ok
    assert result.run_id == "r1"
    assert result.stage == WorkflowStage.DONE
    assert result.caption == "a red mug"
    assert shown == ["a red mug"]
    assert queue.calls[0] == ("submit", "a red mug")
    assert queue.count("status") == 3
    assert sleep.delays == [2.0, 2.0]
    assert result.job.id == "abc123"
    assert result.job.status == JobStatus.COMPLETED
    assert result.job.image_urls == ["https://fal.media/files/abc123.png"]
    assert ("download", "https://fal.media/files/abc123.png") in queue.calls
    assert provider.inputs == [b"\x89PNG\r\n\x1a\nfake"]
    assert Path(result.asset.path) == expected
    assert expected.exists()
    assert result.loaded.mesh_count == 1
    assert result.error is None


def test_caption_failure_stops_before_image_request(tmp_path: Path):
    queue = FakeQueue()
    captioner = FakeCaptioner(error=ServiceError("gemini", "quota exceeded", status=429))

    result = asyncio.run(_orchestrator(tmp_path, captioner=captioner, queue=queue).run())

    assert not result.ok
    assert result.stage == WorkflowStage.CAPTION
    assert result.error_kind == "service-failure"
    assert queue.calls == []


def test_blank_caption_is_a_failure(tmp_path: Path):
    queue = FakeQueue()
    result = asyncio.run(_orchestrator(tmp_path, captioner=FakeCaptioner("   "), queue=queue).run())
    assert result.error_kind == "service-failure"
    assert queue.calls == []


def test_missing_request_id_stops_before_polling(tmp_path: Path):
    queue = FakeQueue(submit_error=DeserializationError("fal submit response has no request_id"))

    result = asyncio.run(_orchestrator(tmp_path, queue=queue).run())

    assert result.stage == WorkflowStage.SUBMIT
    assert result.error_kind == "deserialization-failure"
    assert queue.count("status") == 0


def test_poll_timeout_never_fetches_result(tmp_path: Path):
    queue = FakeQueue(statuses=["IN_PROGRESS"])
    sleep = RecordingSleep()
    provider = FakeModelProvider()

    result = asyncio.run(_orchestrator(tmp_path, queue=queue, provider=provider, sleep=sleep).run())

    assert result.error_kind == "timeout"
    assert result.job.status == JobStatus.TIMEOUT
    assert queue.count("status") == 30
    assert len(sleep.delays) == 29
    assert queue.count("result") == 0
    assert provider.inputs == []


def test_model_generation_failure_writes_nothing(tmp_path: Path):
    provider = FakeModelProvider(error=ServiceError("stability", "3D generation failed", status=500, body="boom"))

    result = asyncio.run(_orchestrator(tmp_path, provider=provider).run())

    assert result.stage == WorkflowStage.GENERATE_3D
    assert "HTTP 500" in result.error
    assert result.asset is None
    assert not (tmp_path / "3DModels").exists()


def test_corrupt_model_fails_at_load(tmp_path: Path):
    result = asyncio.run(_orchestrator(tmp_path, provider=FakeModelProvider(payload=b"not a model")).run())

    assert result.stage == WorkflowStage.LOAD
    assert result.error_kind == "load-failure"
    assert Path(result.asset.path).read_bytes() == b"not a model"


def test_missing_frame_is_missing_input(tmp_path: Path):
    captioner = FakeCaptioner()
    result = asyncio.run(_orchestrator(tmp_path, capture=BytesCaptureSource(None), captioner=captioner).run())
    assert result.error_kind == "missing-input"
    assert captioner.calls == 0


def test_job_without_images_is_service_failure(tmp_path: Path):
    queue = FakeQueue(image_urls=())
    result = asyncio.run(_orchestrator(tmp_path, queue=queue).run())
    assert result.stage == WorkflowStage.FETCH
    assert result.error_kind == "service-failure"
    assert queue.count("download") == 0


def test_build_orchestrator_takes_provider_names_per_call(monkeypatch):
    monkeypatch.setattr(settings, "caption_provider", "gemini")
    monkeypatch.setattr(settings, "image_provider", "fal")
    monkeypatch.setattr(settings, "mesh_provider", "stability")

    orchestrator = build_orchestrator(
        PlaceholderCaptureSource(),
        caption_provider="mock",
        image_provider="mock",
        mesh_provider="mock",
    )

    assert isinstance(orchestrator.captioner, MockCaptionProvider)
    assert isinstance(orchestrator.image_queue, MockImageQueue)
    assert isinstance(orchestrator.model_provider, MockModelProvider)
    assert settings.caption_provider == "gemini"
    assert isinstance(build_orchestrator(PlaceholderCaptureSource()).captioner, GeminiCaptionProvider)
