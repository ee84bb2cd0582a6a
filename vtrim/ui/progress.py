import threading
from typing import List, Optional
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeElapsedColumn
from vtrim.domain.events import (
    JobCancelled, JobCompleted, JobEvent, JobFailed, JobProgressUpdated
)
from vtrim.domain.models import JobState
from vtrim.infrastructure.event_bus import EventBus, Subscription
from vtrim.utils.formatting import format_time


class JobProgressView:
    """Renders one job's events as a Rich progress bar.

    Events tagged with another job id are ignored, so a view never picks up
    a superseded job's tail events.
    """

    def __init__(self, bus: EventBus, console: Optional[Console] = None, label: str = "Processing"):
        self.bus = bus
        self.console = console or Console(stderr=True)
        self.label = label
        self.job_id: Optional[str] = None
        self.outcome: Optional[JobState] = None
        self.error_detail: Optional[str] = None
        self.finished = threading.Event()
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()
        self._pending: List[JobEvent] = []

    def __enter__(self) -> "JobProgressView":
        self._progress = Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>5.1f}%"),
            TextColumn("{task.fields[position]}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        self._task = self._progress.add_task(self.label, total=100.0, position="0:00")
        self._progress.start()
        self._subscriptions.append(self.bus.subscribe(JobEvent, self.on_event))
        return self

    def __exit__(self, exc_type, exc, tb):
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()
        if self._progress is not None:
            self._progress.stop()
        return False

    def track(self, job_id: str):
        """Binds the view to a job. Events that raced ahead of the id are replayed."""
        with self._lock:
            self.job_id = job_id
            pending, self._pending = self._pending, []
        for event in pending:
            if event.job_id == job_id:
                self.on_event(event)

    def on_event(self, event: JobEvent):
        with self._lock:
            if self.job_id is None:
                # start() has not returned yet; keep until track() is called
                self._pending.append(event)
                return
            if event.job_id != self.job_id:
                return

        if isinstance(event, JobProgressUpdated):
            self._progress.update(
                self._task,
                completed=event.percent,
                position=format_time(event.elapsed_seconds),
            )
        elif isinstance(event, JobCompleted):
            self._progress.update(self._task, completed=100.0)
            self._finish(JobState.COMPLETED)
        elif isinstance(event, JobFailed):
            self.error_detail = event.error_detail
            self._finish(JobState.FAILED)
        elif isinstance(event, JobCancelled):
            self._finish(JobState.CANCELLED)

    def _finish(self, outcome: JobState):
        self.outcome = outcome
        self.finished.set()
