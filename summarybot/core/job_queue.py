"""
Job Queue Manager and Worker.
Admits links into a bounded queue and summarizes one video at a time.
"""

import logging
import queue
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from summarybot.core.cancellation import CancelScope
from summarybot.core.constants import (
    JobStatus, Admission, ErrorCode, Messages,
    QUEUE_CAPACITY, JOB_TIMEOUT_SEC, DEFAULT_TASK_INTERVAL_SEC, QUEUE_POLL_SEC,
)
from summarybot.core.error_codes import JobError
from summarybot.core.models import Job
from summarybot.core.url_parse import looks_like_video_link

logger = logging.getLogger(__name__)


class JobQueueManager:
    """
    Owns the pending-job queue and the single worker thread.

    `summarize` is the SummarizeVideo use case (needs execute(url, scope));
    `transport` delivers replies (needs send_message(chat_id, text, markdown=False)).
    """

    def __init__(self, summarize, transport,
                 capacity: int = QUEUE_CAPACITY,
                 task_interval_sec: float = DEFAULT_TASK_INTERVAL_SEC,
                 job_timeout_sec: float = JOB_TIMEOUT_SEC):
        self.summarize = summarize
        self.transport = transport
        self.capacity = capacity
        self.task_interval_sec = task_interval_sec
        self.job_timeout_sec = job_timeout_sec

        self._queue: queue.Queue[Job] = queue.Queue(maxsize=capacity)
        self._admission_lock = threading.Lock()
        self._worker_thread: Optional[threading.Thread] = None
        self._run_scope: Optional[CancelScope] = None
        self.current_job: Optional[Job] = None

        # Callbacks
        self.on_job_updated: Optional[Callable[[Job], None]] = None

    # ── Admission ─────────────────────────────────────────────────────

    def submit(self, chat_id: int, text: str) -> str:
        """
        Admit a message into the queue. Never blocks.
        Returns an Admission value.
        """
        text = (text or "").strip()
        if not looks_like_video_link(text):
            self._reply(chat_id, Messages.GUIDANCE)
            return Admission.REJECTED

        job = Job(chat_id=chat_id, url=text)
        with self._admission_lock:
            # Status is set first so the worker never sees a SUBMITTED job
            job.status = JobStatus.QUEUED
            try:
                self._queue.put_nowait(job)
            except queue.Full:
                job.status = JobStatus.SUBMITTED
                logger.warning("Queue full, rejecting chat_id=%s code=%s",
                               chat_id, ErrorCode.QUEUE_FULL)
                self._reply(chat_id, Messages.QUEUE_FULL)
                return Admission.QUEUE_FULL
            position = self._queue.qsize()

        logger.info("Job queued job_id=%s chat_id=%s position=%d", job.id, chat_id, position)
        self._reply(chat_id, Messages.QUEUED.format(position=position))
        return Admission.QUEUED

    def pending_count(self) -> int:
        return self._queue.qsize()

    # ── Lifecycle ─────────────────────────────────────────────────────

    def start(self, run_scope: CancelScope):
        """Start the worker thread; it runs until run_scope is cancelled."""
        if self.is_running():
            return
        self._run_scope = run_scope
        self._worker_thread = threading.Thread(
            target=self._worker_loop, args=(run_scope,),
            name="summary-worker", daemon=True,
        )
        self._worker_thread.start()

    def stop(self, timeout: float | None = None):
        """Cancel the run scope and wait for the worker to exit."""
        if self._run_scope is not None:
            self._run_scope.cancel()
        if self._worker_thread is not None:
            self._worker_thread.join(timeout)

    def is_running(self) -> bool:
        return self._worker_thread is not None and self._worker_thread.is_alive()

    # ── Worker loop ───────────────────────────────────────────────────

    def _worker_loop(self, run_scope: CancelScope):
        """Main worker loop, processes one job at a time."""
        logger.info("Worker started")
        while not run_scope.cancelled:
            try:
                job = self._queue.get(timeout=QUEUE_POLL_SEC)
            except queue.Empty:
                continue

            self.current_job = job
            try:
                self._process_job(job, run_scope)
            except Exception as e:
                logger.error("Unexpected error processing job %s: %s", job.id, e, exc_info=True)
            finally:
                self.current_job = None
                self._queue.task_done()

            # Pace requests against upstream rate limits
            if run_scope.wait(self.task_interval_sec):
                break
        logger.info("Worker stopped")

    def _process_job(self, job: Job, run_scope: CancelScope):
        """Process a single job: notify, summarize, deliver the result."""
        job.started_at = datetime.now(timezone.utc)
        self._set_status(job, JobStatus.PROCESSING)

        with run_scope.child(timeout=self.job_timeout_sec) as job_scope:
            self._reply(job.chat_id, Messages.PROCESSING)
            try:
                summary = self.summarize.execute(job.url, job_scope)
            except JobError as e:
                if job_scope.timed_out:
                    logger.error("Job timed out job_id=%s after %ss", job.id, self.job_timeout_sec)
                self._fail(job, e.code, e.message)
                return
            except Exception as e:
                logger.error("Unexpected error summarizing job %s", job.id, exc_info=True)
                self._fail(job, "ERR_UNEXPECTED", str(e))
                return

        job.completed_at = datetime.now(timezone.utc)
        self._set_status(job, JobStatus.COMPLETED)
        logger.info("Job completed job_id=%s chat_id=%s", job.id, job.chat_id)
        self._reply(job.chat_id, summary, markdown=True)

    def _fail(self, job: Job, code: str, message: str):
        logger.error("Failed to summarize video job_id=%s code=%s error=%s",
                     job.id, code, message)
        job.error_code = code
        job.error_message = message[:2000]
        job.completed_at = datetime.now(timezone.utc)
        self._set_status(job, JobStatus.FAILED)
        self._reply(job.chat_id, Messages.FAILED)

    # ── Helpers ───────────────────────────────────────────────────────

    def _set_status(self, job: Job, status: str):
        job.status = status
        if self.on_job_updated:
            try:
                self.on_job_updated(job)
            except Exception:
                logger.warning("on_job_updated callback failed", exc_info=True)

    def _reply(self, chat_id: int, text: str, markdown: bool = False):
        """Send a reply; transport errors are logged, never raised."""
        try:
            self.transport.send_message(chat_id, text, markdown=markdown)
        except Exception as e:
            logger.error("Failed to send message chat_id=%s error=%s", chat_id, e)
