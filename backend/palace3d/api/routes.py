from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile

from palace3d.core.settings import settings
from palace3d.schemas.contracts import ModelFile, RunAccepted, ToggleRequest, WorkflowResult
from palace3d.services.capture import (
    BytesCaptureSource,
    CaptureSource,
    FileCaptureSource,
    PlaceholderCaptureSource,
)
from palace3d.services.model_store import ModelStore
from palace3d.services.workflow import WorkflowOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["workflow"])

OrchestratorFactory = Callable[[CaptureSource], WorkflowOrchestrator]

# One run at a time; the last settings.max_kept_runs results stay in memory.
_state: dict = {"active_run": None}
_runs: dict[str, WorkflowResult] = {}


def get_capture_source() -> CaptureSource:
    if settings.capture_path:
        return FileCaptureSource(settings.capture_path)
    return PlaceholderCaptureSource()


def get_orchestrator_factory() -> OrchestratorFactory:
    return build_orchestrator


def get_model_store() -> ModelStore:
    return ModelStore()


def _remember(result: WorkflowResult) -> None:
    _runs[result.run_id] = result
    while len(_runs) > max(settings.max_kept_runs, 1):
        del _runs[next(iter(_runs))]


async def _execute(run_id: str, orchestrator: WorkflowOrchestrator) -> None:
    try:
        _runs[run_id] = await orchestrator.run(run_id)
    except Exception as exc:
        logger.exception(f"Run {run_id} crashed")
        failed = _runs.get(run_id) or WorkflowResult(run_id=run_id)
        _runs[run_id] = failed.model_copy(
            update={
                "ok": False,
                "error_kind": "unexpected-failure",
                "error": f"{type(exc).__name__}: {exc}",
                "finished_at": datetime.now(),
            }
        )
    finally:
        _state["active_run"] = None


def _start_run(background: BackgroundTasks, orchestrator: WorkflowOrchestrator) -> RunAccepted:
    active = _state["active_run"]
    if active:
        raise HTTPException(409, f"Run {active} is still in progress")
    run_id = uuid.uuid4().hex[:12]
    _state["active_run"] = run_id
    _remember(WorkflowResult(run_id=run_id))
    background.add_task(_execute, run_id, orchestrator)
    return RunAccepted(run_id=run_id, status="accepted")


@router.post("/workflow/toggle", response_model=RunAccepted, status_code=202)
async def toggle_workflow(
    req: ToggleRequest,
    background: BackgroundTasks,
    capture: CaptureSource = Depends(get_capture_source),
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    # Any value change starts a run, matching a toggle wired to onValueChanged.
    logger.info(f"Workflow toggle changed to {req.is_on}")
    return _start_run(background, factory(capture))


@router.post("/workflow/run", response_model=RunAccepted, status_code=202)
async def run_workflow(
    background: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    capture: CaptureSource = Depends(get_capture_source),
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    if file is not None:
        raw = await file.read()
        if not raw:
            raise HTTPException(status_code=400, detail="Empty file")
        capture = BytesCaptureSource(raw)
    return _start_run(background, factory(capture))


@router.get("/runs/{run_id}", response_model=WorkflowResult)
def get_run(run_id: str):
    result = _runs.get(run_id)
    if not result:
        raise HTTPException(404, "Run not found")
    return result


@router.get("/models", response_model=list[ModelFile])
def list_models(store: ModelStore = Depends(get_model_store)):
    return [
        ModelFile(name=p.name, size_bytes=p.stat().st_size, url=f"/models/{p.name}")
        for p in store.list_models()
    ]
