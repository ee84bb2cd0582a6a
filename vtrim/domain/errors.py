class VtrimError(Exception):
    """Base class for errors raised synchronously to command callers."""


class SpawnError(VtrimError):
    """The ffmpeg executable could not be launched (missing, not executable)."""

    def __init__(self, executable: str, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(
            f"Failed to spawn {executable}: {reason}. "
            f"Make sure {executable} is installed and in PATH."
        )


class ProbeError(VtrimError):
    """ffprobe failed or its output did not contain a usable duration."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"ffprobe failed for {path}: {reason}")


class JobBusyError(VtrimError):
    """A job is already running and the registry policy is to reject."""

    def __init__(self, active_job_id: str):
        self.active_job_id = active_job_id
        super().__init__(f"Job {active_job_id} is still running")
