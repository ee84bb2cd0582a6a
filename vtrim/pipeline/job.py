"""One ffmpeg invocation and its lifecycle.

State machine: PENDING -> RUNNING -> COMPLETED | FAILED | CANCELLED.

start(), cancel() and exit handling all take the job lock. The exit handler
reads `cancellation_requested` and commits the terminal state inside the same
critical section, so a cancel either lands before that decision (job ends
CANCELLED whatever the exit code) or finds the job terminal and does nothing.
Only the worker thread publishes events, which keeps per-job ordering:
progress samples first, then exactly one terminal event.
"""

import logging
import os
import signal
import subprocess
import threading
import time
import uuid
from collections import deque
from typing import Callable, Deque, Optional
from vtrim.config.models import AppConfig
from vtrim.domain.events import (
    JobCancelled, JobCompleted, JobFailed, JobProgressUpdated, JobTerminated
)
from vtrim.domain.models import JobState, ProcessingParams, ProgressSample
from vtrim.infrastructure.event_bus import EventBus
from vtrim.infrastructure.ffmpeg import FFmpegAdapter, compute_percent, parse_progress_time

SIGKILL = getattr(signal, "SIGKILL", signal.SIGTERM)


class Job:
    """Owns one ffmpeg subprocess, its diagnostic buffer and its state."""

    def __init__(
        self,
        params: ProcessingParams,
        config: AppConfig,
        event_bus: EventBus,
        ffmpeg: Optional[FFmpegAdapter] = None,
        on_finished: Optional[Callable[["Job"], None]] = None,
        duration_hint: Optional[float] = None,
    ):
        self.id = uuid.uuid4().hex
        self.params = params
        self.config = config
        self.event_bus = event_bus
        self.ffmpeg = ffmpeg or FFmpegAdapter(config)
        self.on_finished = on_finished
        self.logger = logging.getLogger(__name__)

        self.state = JobState.PENDING
        self.cancellation_requested = False
        self.process: Optional[subprocess.Popen] = None
        self.returncode: Optional[int] = None
        self.error_detail: Optional[str] = None
        self.last_sample: Optional[ProgressSample] = None

        # Progress window: trimmed span, or the probed source duration
        self.window_seconds = params.trim_duration if params.has_trim else duration_hint

        self._buffer: Deque[str] = deque(maxlen=config.jobs.diagnostic_buffer_lines)
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._kill_timer: Optional[threading.Timer] = None
        self._process_group = False
        self._started_at: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def is_active(self) -> bool:
        """Running and not already on its way out."""
        return self.state == JobState.RUNNING and not self.cancellation_requested

    @property
    def diagnostic_lines(self):
        return list(self._buffer)

    def start(self) -> str:
        """Spawns ffmpeg and the reader thread; returns the job id immediately.

        SpawnError propagates to the caller and the job stays PENDING.
        """
        with self._lock:
            if self.state != JobState.PENDING:
                raise RuntimeError(f"Job {self.id} already started ({self.state.value})")
            self.process = self.ffmpeg.spawn(self.params)
            self._process_group = os.name == "posix"
            self._started_at = time.monotonic()
            self.state = JobState.RUNNING

        self.logger.info(
            f"JOB_START: {self.id} {self.params.input_file} -> {self.params.output_file} "
            f"(pid {getattr(self.process, 'pid', '?')})"
        )
        self._worker = threading.Thread(target=self._run, name=f"job-{self.id[:8]}", daemon=True)
        self._worker.start()
        return self.id

    def cancel(self) -> bool:
        """Requests termination. Returns False (no-op) unless the job was RUNNING."""
        with self._lock:
            if self.state != JobState.RUNNING or self.cancellation_requested:
                return False
            self.cancellation_requested = True
            self.logger.info(f"JOB_CANCEL: {self.id}")
            self._send_signal(signal.SIGTERM)
            self._kill_timer = threading.Timer(self.config.jobs.cancel_grace_seconds, self._force_kill)
            self._kill_timer.daemon = True
            self._kill_timer.start()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Blocks until the terminal event has been published."""
        return self._done.wait(timeout)

    def _send_signal(self, sig):
        process = self.process
        if process is None:
            return
        try:
            if self._process_group:
                # start_new_session=True makes the child its own group leader
                os.killpg(process.pid, sig)
            elif sig == SIGKILL:
                process.kill()
            else:
                process.terminate()
        except ProcessLookupError:
            # Already exited; the worker will observe it
            self.logger.debug(f"JOB_SIGNAL: {self.id} process already gone")
        except OSError as exc:
            # e.g. EPERM once the pid has been reaped and reused
            self.logger.warning(f"JOB_SIGNAL: {self.id} signal {sig} failed ({exc})")

    def _force_kill(self):
        with self._lock:
            if self.state.is_terminal:
                return
            if self.process is not None and self.process.poll() is None:
                self.logger.warning(
                    f"JOB_KILL: {self.id} still alive after "
                    f"{self.config.jobs.cancel_grace_seconds}s, sending SIGKILL"
                )
                self._send_signal(SIGKILL)

    def _run(self):
        failure: Optional[str] = None
        returncode: Optional[int] = None
        try:
            self._read_output()
            returncode = self.process.wait()
        except Exception as exc:
            self.logger.exception(f"JOB_ERROR: {self.id}")
            failure = f"Process error: {exc}"
            try:
                if self.process.poll() is None:
                    self.process.kill()
                    self.process.wait()
            except OSError as kill_exc:
                self.logger.debug(f"JOB_ERROR: {self.id} cleanup kill failed ({kill_exc})")
        self._finish(returncode, failure)

    def _read_output(self):
        stream = self.process.stdout
        if stream is None:
            return
        for raw in stream:
            line = raw.rstrip("\r\n")
            if not line:
                continue
            self._buffer.append(line)
            if self.cancellation_requested:
                continue
            elapsed = parse_progress_time(line)
            if elapsed is None:
                continue
            if self.last_sample is not None and elapsed < self.last_sample.elapsed_seconds:
                continue
            self.last_sample = ProgressSample(
                job_id=self.id,
                elapsed_seconds=elapsed,
                percent=compute_percent(elapsed, self.window_seconds),
            )
            self.event_bus.publish(JobProgressUpdated(
                job_id=self.id,
                elapsed_seconds=self.last_sample.elapsed_seconds,
                percent=self.last_sample.percent,
            ))

    def _error_excerpt(self, returncode: Optional[int], failure: Optional[str]) -> str:
        header = failure or f"ffmpeg exited with code {returncode}"
        tail = list(self._buffer)[-self.config.jobs.error_tail_lines:]
        if not tail:
            return header
        return header + "\n" + "\n".join(tail)

    def _finish(self, returncode: Optional[int], failure: Optional[str]):
        with self._lock:
            if self._kill_timer is not None:
                self._kill_timer.cancel()
            self.returncode = returncode
            if self.cancellation_requested:
                self.state = JobState.CANCELLED
                event: JobTerminated = JobCancelled(job_id=self.id)
            elif failure is None and returncode == 0:
                self.state = JobState.COMPLETED
                event = JobCompleted(job_id=self.id)
            else:
                self.state = JobState.FAILED
                self.error_detail = self._error_excerpt(returncode, failure)
                event = JobFailed(job_id=self.id, error_detail=self.error_detail)

        elapsed = time.monotonic() - self._started_at if self._started_at else 0.0
        self.logger.info(
            f"JOB_END: {self.id} status={self.state.value.lower()} code={returncode} elapsed={elapsed:.2f}s"
        )
        try:
            self.event_bus.publish(event)
            if self.on_finished is not None:
                self.on_finished(self)
        finally:
            self._done.set()
