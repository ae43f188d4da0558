"""
Asynchronous task helpers for long-running background batch translations.
"""

from __future__ import annotations

import asyncio
import threading
import time
import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from pagetranslate.ai.providers import TranslationClient
from pagetranslate.logger import get_logger
from pagetranslate.structures import AUTO_LANGUAGE, BatchRequest
from pagetranslate.translation.dispatcher import dispatch_batch
from pagetranslate.translation.progress import BatchProgress

logger = get_logger(__name__)

TERMINAL_STATES = ("completed", "failed", "cancelled")


@dataclass
class JobState:
    """In-memory representation of an asynchronous batch job."""

    job_id: str
    texts: List[str] = field(default_factory=list)
    target_lang: str = "en"
    source_lang: str = AUTO_LANGUAGE
    concurrency: int = 1
    cancel_requested: bool = False
    state: str = "pending"  # pending|running|completed|failed|cancelled
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    completed: int = 0
    results: Optional[List[Optional[str]]] = None
    error: Optional[str] = None
    last_update: float = field(default_factory=time.time)

    @property
    def total(self) -> int:
        return len(self.texts)

    def request_cancel(self):
        """Mark this job as requested for cancellation."""
        self.cancel_requested = True
        self.last_update = time.time()

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        # Texts can be large; clients already have them
        payload.pop("texts")
        payload["total"] = self.total
        payload["progress"] = BatchProgress(self.completed, self.total).to_dict()
        if self.state not in TERMINAL_STATES:
            payload["results"] = None
        return payload


_jobs: Dict[str, JobState] = {}
_jobs_lock = threading.Lock()
_JOB_RETENTION_SECONDS = 600  # Retain job info for 10 minutes after completion


def create_batch_job(
    translator: TranslationClient,
    texts: List[str],
    target_lang: str,
    concurrency: int,
    source_lang: str = AUTO_LANGUAGE,
) -> JobState:
    """
    Create and launch a background batch translation job.

    Args:
        translator: Client used for every unit.
        texts: Ordered texts to translate.
        target_lang: Target language code.
        concurrency: Maximum number of upstream calls in flight.
        source_lang: Source language code or "auto".

    Returns:
        JobState for the new job (already registered and running in background).
    """
    job = JobState(
        job_id=uuid.uuid4().hex,
        texts=list(texts),
        target_lang=target_lang,
        source_lang=source_lang,
        concurrency=concurrency,
    )

    with _jobs_lock:
        _cleanup_jobs_locked()
        _jobs[job.job_id] = job

    thread = threading.Thread(
        target=_run_batch_job,
        args=(job, translator),
        name=f"batch-job-{job.job_id}",
        daemon=True,
    )
    thread.start()
    logger.info(
        "Batch job %s started (texts=%s, target=%s, concurrency=%s)",
        job.job_id,
        job.total,
        job.target_lang,
        job.concurrency,
    )
    return job


def get_job(job_id: str) -> Optional[JobState]:
    """Fetch a job by ID (if still retained)."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job and job.finished_at and (time.time() - job.finished_at) > _JOB_RETENTION_SECONDS:
            # Expired; remove
            _jobs.pop(job_id, None)
            return None
        return job


def cancel_job(job_id: str) -> bool:
    """
    Request cancellation of a running job.

    Returns:
        True if job was found and cancellation requested, False otherwise.
    """
    with _jobs_lock:
        job = _jobs.get(job_id)
        if not job:
            return False
        if job.state in TERMINAL_STATES:
            return False
        job.request_cancel()
        logger.info("Cancellation requested for job %s", job_id)
        return True


def serialize_job(job: JobState) -> Dict[str, Any]:
    """Convert JobState into JSON-safe dict."""
    with _jobs_lock:
        return job.to_dict()


def _run_batch_job(job: JobState, translator: TranslationClient):
    """Worker function executed in a background thread."""
    job.state = "running"
    job.started_at = time.time()
    job.last_update = job.started_at

    def on_progress(completed: int, total: int):
        with _jobs_lock:
            # Settlement order is not guaranteed; keep the highest count seen
            job.completed = max(job.completed, completed)
            job.last_update = time.time()

    def check_cancel():
        with _jobs_lock:
            return job.cancel_requested

    try:
        response = asyncio.run(
            dispatch_batch(
                translator,
                BatchRequest(
                    texts=job.texts,
                    target_lang=job.target_lang,
                    source_lang=job.source_lang,
                    concurrency=job.concurrency,
                    progress_sink=on_progress,
                ),
                cancel_check=check_cancel,
            )
        )
    except Exception as exc:
        error_type = type(exc).__name__
        with _jobs_lock:
            job.state = "failed"
            job.error = f"{error_type}: {exc}"
            job.finished_at = time.time()
            job.last_update = job.finished_at
        logger.exception("Batch job %s failed: %s: %s", job.job_id, error_type, exc)
        return

    with _jobs_lock:
        job.results = response.results
        job.state = "cancelled" if response.cancelled else "completed"
        job.finished_at = time.time()
        job.last_update = job.finished_at

    logger.info(
        "Batch job %s %s (translated=%s, failed=%s)",
        job.job_id,
        job.state,
        sum(1 for text in response.results if text is not None),
        sum(1 for text in response.results if text is None),
    )


def _cleanup_jobs_locked():
    """Remove completed jobs that exceeded retention period (call with lock held)."""
    now = time.time()
    expired = [
        job_id
        for job_id, job in _jobs.items()
        if job.finished_at and (now - job.finished_at) > _JOB_RETENTION_SECONDS
    ]
    for job_id in expired:
        _jobs.pop(job_id, None)
