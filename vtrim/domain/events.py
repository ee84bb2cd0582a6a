"""Domain events for the job lifecycle.

Events flow from a running job through the EventBus to whatever UI layer is
subscribed. Every job event carries the id of the job that produced it, so a
subscriber can drop events for jobs it no longer tracks.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """Base class for all domain events.

    Events are frozen Pydantic models: subscribers get a snapshot, never a
    live view of job state.
    """

    model_config = ConfigDict(frozen=True)


class JobEvent(Event):
    """Base class for events related to a specific job."""

    job_id: str = Field(min_length=1)


class JobProgressUpdated(JobEvent):
    """Emitted every time ffmpeg reports a new output timestamp."""

    elapsed_seconds: float = Field(ge=0)
    percent: float = Field(ge=0, le=100)


class JobTerminated(JobEvent):
    """Base class for the three terminal events. Exactly one per job."""

    pass


class JobCompleted(JobTerminated):
    """Emitted when ffmpeg exits with code 0 and nobody cancelled the job."""

    pass


class JobFailed(JobTerminated):
    """Emitted when ffmpeg exits non-zero without a cancellation request."""

    error_detail: str


class JobCancelled(JobTerminated):
    """Emitted when a cancellation was requested before the exit was handled."""

    pass
