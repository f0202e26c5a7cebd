from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


class WorkflowStage(str, Enum):
    CAPTURE = "capture"
    CAPTION = "caption"
    SUBMIT = "submit"
    POLL = "poll"
    FETCH = "fetch"
    GENERATE_3D = "generate_3d"
    PERSIST = "persist"
    LOAD = "load"
    DONE = "done"


# fal.ai queue payloads. Unknown keys are ignored; the queue adds several.
class FalSubmitResponse(BaseModel):
    request_id: Optional[str] = None
    status_url: Optional[str] = None
    response_url: Optional[str] = None


class FalStatusResponse(BaseModel):
    status: Optional[str] = None
    queue_position: Optional[int] = None


class FalImage(BaseModel):
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    content_type: Optional[str] = None


class FalResultResponse(BaseModel):
    images: List[FalImage] = Field(default_factory=list)
    prompt: Optional[str] = None
    seed: Optional[int] = None


class Job(BaseModel):
    id: str
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    image_urls: List[str] = Field(default_factory=list)


class GeneratedAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    size_bytes: int
    created_at: datetime


class LoadedModel(BaseModel):
    path: str
    version: str
    generator: str = ""
    scene_count: int = 0
    node_count: int = 0
    mesh_count: int = 0


class WorkflowResult(BaseModel):
    run_id: str
    ok: bool = False
    stage: WorkflowStage = WorkflowStage.CAPTURE
    caption: str = ""
    job: Optional[Job] = None
    asset: Optional[GeneratedAsset] = None
    loaded: Optional[LoadedModel] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None


class ToggleRequest(BaseModel):
    is_on: bool = True


class RunAccepted(BaseModel):
    run_id: str
    status: str


class ModelFile(BaseModel):
    name: str
    size_bytes: int
    url: str
