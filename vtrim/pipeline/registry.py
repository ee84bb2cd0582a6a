import logging
import threading
from typing import Dict, List, Optional
from vtrim.config.models import AppConfig, BusyPolicy
from vtrim.domain.errors import JobBusyError
from vtrim.domain.models import ProcessingParams
from vtrim.infrastructure.event_bus import EventBus
from vtrim.infrastructure.ffmpeg import FFmpegAdapter
from vtrim.pipeline.job import Job


class JobRegistry:
    """Thread-safe map of job id -> Job; the one place that knows what runs.

    A job is registered only after ffmpeg spawned, and removes itself once its
    terminal event has been published. The registry lock is never held while
    a job publishes, so subscribers may call back into the registry.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        ffmpeg: Optional[FFmpegAdapter] = None,
        policy: Optional[BusyPolicy] = None,
    ):
        self.config = config
        self.event_bus = event_bus
        self.ffmpeg = ffmpeg or FFmpegAdapter(config)
        self.policy = BusyPolicy(policy or config.jobs.busy_policy)
        self.logger = logging.getLogger(__name__)
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def create(self, params: ProcessingParams, duration_hint: Optional[float] = None) -> Job:
        """Starts a new job under the busy policy and registers it.

        Raises JobBusyError (reject policy) or SpawnError; in both cases
        nothing is registered.
        """
        with self._lock:
            active = self.active_jobs()
            if active:
                if self.policy == BusyPolicy.REJECT:
                    self.logger.info(f"JOB_REJECT: {active[0].id} still running")
                    raise JobBusyError(active[0].id)
                for job in active:
                    self.logger.info(f"JOB_SUPERSEDE: cancelling {job.id}")
                    job.cancel()

            job = Job(
                params,
                self.config,
                self.event_bus,
                ffmpeg=self.ffmpeg,
                on_finished=self._on_job_finished,
                duration_hint=duration_hint,
            )
            job.start()
            # Registry lock is held, so a fast-exiting job cannot remove itself first
            self._jobs[job.id] = job
            return job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def remove(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.pop(job_id, None)

    def cancel(self, job_id: str) -> bool:
        """Cancels a running job. Unknown or finished ids are a no-op (False)."""
        job = self.get(job_id)
        if job is None:
            self.logger.debug(f"JOB_CANCEL: {job_id} not found (already finished?)")
            return False
        return job.cancel()

    def active_jobs(self) -> List[Job]:
        with self._lock:
            return [job for job in self._jobs.values() if job.is_active]

    def active_job(self) -> Optional[Job]:
        active = self.active_jobs()
        return active[0] if active else None

    def cancel_all(self) -> int:
        with self._lock:
            jobs = list(self._jobs.values())
        return sum(1 for job in jobs if job.cancel())

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Cancels everything and waits for the terminal events. True if all finished."""
        with self._lock:
            jobs = list(self._jobs.values())
        for job in jobs:
            job.cancel()
        return all(job.wait(timeout) for job in jobs)

    def _on_job_finished(self, job: Job):
        self.remove(job.id)
