"""Error kinds raised by the workflow stages.

Clients raise these; the orchestrator catches ``WorkflowError`` at the run
boundary and turns it into a failed result. Only the poll loop retries.
"""
from __future__ import annotations

import httpx


class WorkflowError(RuntimeError):
    kind: str = "workflow-failure"


class MissingInputError(WorkflowError):
    kind = "missing-input"


class ServiceError(WorkflowError):
    kind = "service-failure"

    def __init__(self, service: str, message: str, status: int | None = None, body: str = ""):
        self.service = service
        self.status = status
        self.body = body
        detail = f"{service}: {message}"
        if status is not None:
            detail = f"{service}: HTTP {status} {message}".rstrip()
        super().__init__(detail)


class DeserializationError(WorkflowError):
    kind = "deserialization-failure"


class PollTimeoutError(WorkflowError):
    kind = "timeout"

    def __init__(self, job_id: str, attempts: int):
        self.job_id = job_id
        self.attempts = attempts
        super().__init__(f"job {job_id} not completed after {attempts} attempts")


class StorageError(WorkflowError):
    kind = "io-failure"


class AssetLoadError(WorkflowError):
    kind = "load-failure"


def raise_for_service(resp: httpx.Response, service: str) -> None:
    if resp.is_success:
        return
    body = resp.text
    raise ServiceError(service, resp.reason_phrase or "", status=resp.status_code, body=body)
