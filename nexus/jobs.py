from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as futures_wait
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict

from pydantic import BaseModel, Field

from .config import (
    DEPLOY_WORKERS,
    JOB_RETENTION_SECONDS,
    SECONDARY_POLL_INTERVAL_SECONDS,
    SECONDARY_POLL_MAX_ATTEMPTS,
)
from .deployer import deploy
from .models import DeploymentRequest, DeploymentResult

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    queued = "QUEUED"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"
    failed = "FAILED"
    cancelled = "CANCELLED"


FINISHED_STATUSES = (JobStatus.completed, JobStatus.failed, JobStatus.cancelled)


class JobRecord(BaseModel):
    id: str
    status: JobStatus = JobStatus.queued
    site_name: str | None = None
    progress: int = 0
    message: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    result: DeploymentResult | None = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", exclude={"result"})
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data


class JobStore:
    """Background deployments, one cancellation event per job."""

    def __init__(
        self,
        *,
        max_workers: int = DEPLOY_WORKERS,
        runner: Callable[..., DeploymentResult] = deploy,
        poll_interval: float = SECONDARY_POLL_INTERVAL_SECONDS,
        max_attempts: int = SECONDARY_POLL_MAX_ATTEMPTS,
        deploy_kwargs: Dict[str, Any] | None = None,
        retention_seconds: float = JOB_RETENTION_SECONDS,
    ) -> None:
        self._jobs: Dict[str, JobRecord] = {}
        self._events: Dict[str, threading.Event] = {}
        self._futures: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="deploy")
        self._runner = runner
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._deploy_kwargs = dict(deploy_kwargs or {})
        self._retention = timedelta(seconds=retention_seconds)

    def submit(self, request: DeploymentRequest) -> JobRecord:
        with self._lock:
            self._evict_finished()
            job_id = self._generate_id()
            job = JobRecord(id=job_id, site_name=request.site_name, message="Queued")
            self._jobs[job_id] = job
            self._events[job_id] = threading.Event()
            self._futures[job_id] = self._executor.submit(self._run, job_id, request)
            snapshot = job.model_copy()

        logger.info("Queued deployment job %s for %s", job_id, request.site_name)
        return snapshot

    def get_job(self, job_id: str) -> JobRecord | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def cancel(self, job_id: str) -> JobRecord | None:
        """Signal a job to stop; a finished job is returned unchanged."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if job.status not in FINISHED_STATUSES:
                self._events[job_id].set()
                future = self._futures.get(job_id)
                if future is not None and future.cancel():
                    # Never started
                    job.status = JobStatus.cancelled
                    job.message = "Deployment was cancelled"
                    job.updated_at = _utcnow()
            return job.model_copy()

    def wait(self, job_id: str, timeout: float | None = None) -> JobRecord | None:
        future = self._futures.get(job_id)
        if future is not None:
            futures_wait([future], timeout=timeout)
        return self.get_job(job_id)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            for event in self._events.values():
                event.set()
        self._executor.shutdown(wait=wait)

    def _evict_finished(self) -> None:
        # Caller holds the lock
        cutoff = _utcnow() - self._retention
        expired = [
            job_id for job_id, job in self._jobs.items()
            if job.status in FINISHED_STATUSES and job.updated_at <= cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
            self._events.pop(job_id, None)
            self._futures.pop(job_id, None)
        if expired:
            logger.info("Evicted %d finished deployment jobs", len(expired))

    def _update(self, job_id: str, **changes: Any) -> None:
        with self._lock:
            job = self._jobs[job_id]
            for key, value in changes.items():
                setattr(job, key, value)
            job.updated_at = _utcnow()

    def _run(self, job_id: str, request: DeploymentRequest) -> None:
        cancel_event = self._events[job_id]
        if cancel_event.is_set():
            self._update(job_id, status=JobStatus.cancelled, message="Deployment was cancelled")
            return

        self._update(job_id, status=JobStatus.in_progress, message="Starting deployment...")

        def on_progress(percent: int, message: str) -> None:
            self._update(job_id, progress=percent, message=message)

        try:
            result = self._runner(
                request,
                on_progress=on_progress,
                cancel_event=cancel_event,
                poll_interval=self._poll_interval,
                max_attempts=self._max_attempts,
                **self._deploy_kwargs,
            )
        except Exception as e:
            logger.exception("Deployment job %s crashed", job_id)
            result = DeploymentResult(
                success=False,
                error_type="internal_error",
                error_message=str(e) or e.__class__.__name__,
                site_name=request.site_name,
            )

        if result.success:
            status = JobStatus.completed
            message = "Deployment complete!"
        elif result.error_type == "cancelled":
            status = JobStatus.cancelled
            message = result.error_message or "Deployment was cancelled"
        else:
            status = JobStatus.failed
            message = result.error_message or "Deployment failed"

        self._update(job_id, status=status, message=message, result=result)
        logger.info("Deployment job %s finished: %s", job_id, status.value)

    def _generate_id(self) -> str:
        ts = _utcnow().strftime("%Y%m%d%H%M%S")
        suffix = uuid.uuid4().hex[:6]
        return f"job_{ts}_{suffix}"


__all__ = ["JobStore", "JobRecord", "JobStatus"]
