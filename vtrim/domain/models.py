from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

# Containers the trimming pipeline can write to
OUTPUT_EXTENSIONS = ("mp4", "avi", "mov", "mkv", "webm")


class JobState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED)


class ProcessingParams(BaseModel):
    """Immutable description of one trim/burn-in request."""

    model_config = ConfigDict(frozen=True)

    input_file: Path
    output_file: Path
    start_time: Optional[float] = Field(default=None, ge=0)
    end_time: Optional[float] = Field(default=None, ge=0)
    subtitle_file: Optional[Path] = None

    @model_validator(mode="after")
    def validate_trim_window(self):
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        if self.start_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self

    @model_validator(mode="after")
    def validate_output_extension(self):
        ext = self.output_file.suffix.lower().lstrip(".")
        if ext not in OUTPUT_EXTENSIONS:
            raise ValueError(
                f"Invalid output extension: {ext or '(none)'}. "
                f"Supported formats: {', '.join(OUTPUT_EXTENSIONS)}"
            )
        return self

    @property
    def has_trim(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def trim_duration(self) -> Optional[float]:
        if not self.has_trim:
            return None
        return self.end_time - self.start_time


class ProgressSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: str
    elapsed_seconds: float = Field(ge=0)
    percent: float = Field(ge=0, le=100)
