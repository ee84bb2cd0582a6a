import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Union
from vtrim.domain.errors import ProbeError

class FFprobeAdapter:
    """Wrapper around ffprobe to resolve media durations."""

    def __init__(self, executable: str = "ffprobe"):
        self.executable = executable
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _to_float(value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    @classmethod
    def _parse_duration_tag(cls, value: Any) -> float:
        if value is None:
            return 0.0
        text = str(value).strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            pass
        if ":" in text:
            parts = text.split(":")
            if len(parts) in (2, 3):
                try:
                    parts_f = [float(p) for p in parts]
                except ValueError:
                    return 0.0
                if len(parts_f) == 2:
                    minutes, seconds = parts_f
                    return minutes * 60 + seconds
                hours, minutes, seconds = parts_f
                return hours * 3600 + minutes * 60 + seconds
        return 0.0

    @classmethod
    def _parse_time_base_duration(cls, duration_ts: Any, time_base: Any) -> float:
        if duration_ts is None or time_base is None:
            return 0.0
        time_base_text = str(time_base)
        if "/" not in time_base_text:
            return 0.0
        num_text, den_text = time_base_text.split("/", 1)
        num = cls._to_float(num_text)
        den = cls._to_float(den_text)
        if den == 0:
            return 0.0
        ticks = cls._to_float(duration_ts)
        if ticks <= 0:
            return 0.0
        return ticks * (num / den)

    @classmethod
    def extract_duration(cls, data: Dict[str, Any]) -> float:
        """Duration from parsed ffprobe JSON; 0.0 when nothing usable is present.

        Fallback order: format.duration, format tags, first stream with a
        duration, its tags, duration_ts/time_base.
        """
        fmt = data.get("format") or {}
        duration = cls._to_float(fmt.get("duration"))
        if duration <= 0:
            tags = fmt.get("tags") or {}
            duration = cls._parse_duration_tag(tags.get("DURATION") or tags.get("duration"))

        streams = data.get("streams") or []
        # Video first, then whatever else carries timing
        streams = sorted(streams, key=lambda s: s.get("codec_type") != "video")
        for stream in streams:
            if duration > 0:
                break
            duration = cls._to_float(stream.get("duration"))
            if duration <= 0:
                tags = stream.get("tags") or {}
                duration = cls._parse_duration_tag(tags.get("DURATION") or tags.get("duration"))
            if duration <= 0:
                duration = cls._parse_time_base_duration(stream.get("duration_ts"), stream.get("time_base"))
        return duration

    def probe_duration(self, file_path: Union[str, Path]) -> float:
        """Executes ffprobe and returns the media duration in seconds."""
        cmd = [
            self.executable,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(file_path),
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, encoding="utf-8", errors="replace")
        except OSError as exc:
            self.logger.error(f"PROBE_FAIL: {file_path} (spawn: {exc})")
            raise ProbeError(file_path, f"cannot run {self.executable}: {exc}") from exc

        if result.returncode != 0:
            self.logger.error(f"PROBE_FAIL: {file_path} (exit code {result.returncode})")
            raise ProbeError(file_path, f"exit code {result.returncode}: {(result.stderr or '').strip()}")

        try:
            data = json.loads(result.stdout)
        except (TypeError, ValueError) as exc:
            self.logger.error(f"PROBE_FAIL: {file_path} (unparseable output)")
            raise ProbeError(file_path, f"unparseable output: {exc}") from exc
        if not isinstance(data, dict):
            raise ProbeError(file_path, "unexpected output structure")

        fmt = data.get("format") or {}
        duration = self.extract_duration(data)
        if duration <= 0:
            # A literal zero is a valid (empty) duration, missing data is not
            if self._is_zero(fmt.get("duration")):
                return 0.0
            self.logger.error(f"PROBE_FAIL: {file_path} (no duration)")
            raise ProbeError(file_path, "no duration in ffprobe output")

        self.logger.debug(f"PROBE_OK: {file_path} duration={duration:.3f}s")
        return duration

    @staticmethod
    def _is_zero(value: Any) -> bool:
        try:
            return float(value) == 0.0
        except (TypeError, ValueError):
            return False
