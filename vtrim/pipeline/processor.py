import logging
from pathlib import Path
from typing import Any, Callable, Optional, Type, Union
from vtrim.config.models import AppConfig
from vtrim.domain.errors import ProbeError
from vtrim.domain.events import Event
from vtrim.domain.models import ProcessingParams
from vtrim.infrastructure.event_bus import EventBus, Subscription
from vtrim.infrastructure.ffmpeg import FFmpegAdapter
from vtrim.infrastructure.ffprobe import FFprobeAdapter
from vtrim.infrastructure.tools import check_tools_available
from vtrim.pipeline.registry import JobRegistry


class VideoProcessor:
    """Application context handed to the UI layer.

    Exposes the four commands (check tools, probe duration, start, cancel)
    plus event subscription and shutdown. Holds no UI state of its own.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: Optional[EventBus] = None,
        ffprobe: Optional[FFprobeAdapter] = None,
        ffmpeg: Optional[FFmpegAdapter] = None,
        registry: Optional[JobRegistry] = None,
    ):
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.ffprobe = ffprobe or FFprobeAdapter(config.tools.ffprobe)
        self.registry = registry or JobRegistry(config, self.event_bus, ffmpeg=ffmpeg)
        self.logger = logging.getLogger(__name__)

    def check_tools(self) -> bool:
        return check_tools_available(self.config.tools)

    def probe_duration(self, file_path: Union[str, Path]) -> float:
        return self.ffprobe.probe_duration(file_path)

    def start(self, params: ProcessingParams) -> str:
        """Starts a job and returns its id. SpawnError/JobBusyError are raised here."""
        duration_hint = None
        if not params.has_trim and self.config.jobs.probe_full_length:
            try:
                duration_hint = self.probe_duration(params.input_file)
            except ProbeError as exc:
                # ffmpeg reports the real problem; progress just stays at 0%
                self.logger.warning(f"JOB_NO_DURATION: {params.input_file} ({exc.reason})")
        job = self.registry.create(params, duration_hint=duration_hint)
        return job.id

    def cancel(self, job_id: str) -> bool:
        return self.registry.cancel(job_id)

    def subscribe(self, event_type: Type[Event], callback: Callable[[Any], None]) -> Subscription:
        return self.event_bus.subscribe(event_type, callback)

    def wait(self, job_id: str, timeout: Optional[float] = None) -> bool:
        """Waits for a job's terminal event. Unknown ids count as finished."""
        job = self.registry.get(job_id)
        if job is None:
            return True
        return job.wait(timeout)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        self.logger.info("SHUTDOWN: cancelling active jobs")
        return self.registry.shutdown(timeout)
