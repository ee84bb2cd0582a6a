from enum import Enum
from pathlib import Path
from pydantic import BaseModel, Field, field_validator, model_validator


class BusyPolicy(str, Enum):
    """What the job registry does when a start arrives while a job runs."""
    REJECT = "reject"
    SUPERSEDE = "supersede"


class ToolsConfig(BaseModel):
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    version_timeout_s: float = Field(default=10.0, gt=0)


class EncodingConfig(BaseModel):
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    overwrite: bool = True

    @field_validator("video_codec", "audio_codec")
    @classmethod
    def validate_codec(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("codec name must not be empty")
        return v


class JobsConfig(BaseModel):
    busy_policy: BusyPolicy = BusyPolicy.REJECT
    cancel_grace_seconds: float = Field(default=5.0, gt=0)  # SIGTERM -> SIGKILL
    error_tail_lines: int = Field(default=20, ge=1)
    diagnostic_buffer_lines: int = Field(default=500, ge=1)
    probe_full_length: bool = True  # probe input for percent when not trimming

    @model_validator(mode="after")
    def validate_buffer(self):
        if self.diagnostic_buffer_lines < self.error_tail_lines:
            raise ValueError("diagnostic_buffer_lines must be >= error_tail_lines")
        return self


class LoggingConfig(BaseModel):
    log_path: str = "~/.vtrim/logs/vtrim.log"
    debug: bool = False

    @property
    def resolved_path(self) -> Path:
        return Path(self.log_path).expanduser()


class AppConfig(BaseModel):
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
