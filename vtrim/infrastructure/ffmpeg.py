import logging
import os
import re
import subprocess
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Union
from vtrim.config.models import AppConfig, EncodingConfig
from vtrim.domain.errors import SpawnError
from vtrim.domain.models import ProcessingParams

# ffmpeg interleaves 'time=00:00:00.00' with frame/bitrate/speed counters
TIME_REGEX = re.compile(r"time=(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)")

# Characters with a meaning inside a filter option value, then inside a filtergraph
_OPTION_SPECIAL = ("\\", "'", ":")
_GRAPH_SPECIAL = ("\\", "'", "[", "]", ",", ";")


def _escape(text: str, specials) -> str:
    # Backslash comes first in both tables so escapes are not escaped twice
    for ch in specials:
        text = text.replace(ch, "\\" + ch)
    return text


def escape_filter_path(path: Union[str, Path]) -> str:
    """Escapes a path for use as a filter option inside an ffmpeg -vf graph.

    Two levels apply: the option value (`:` separates options) and the
    filtergraph itself (`,` `;` `[` `]` separate filters and pads).
    """
    return _escape(_escape(str(path), _OPTION_SPECIAL), _GRAPH_SPECIAL)


def format_seconds(value: float) -> str:
    """Shortest fixed-point text that parses back to the same float ('10', '12.5').

    ffmpeg time values have no exponent form, so 1e-05 is written 0.00001.
    """
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def build_command(params: ProcessingParams, encoding: EncodingConfig, executable: str = "ffmpeg") -> List[str]:
    """Constructs the ffmpeg command line arguments for a trim/burn-in job."""
    cmd = [executable]
    if encoding.overwrite:
        cmd.append("-y")
    cmd.extend(["-i", str(params.input_file)])

    # Output-side seek: ffmpeg reports time= relative to the trimmed output
    if params.has_trim:
        cmd.extend([
            "-ss", format_seconds(params.start_time),
            "-to", format_seconds(params.end_time),
        ])

    if params.subtitle_file is not None:
        cmd.extend(["-vf", f"subtitles={escape_filter_path(params.subtitle_file)}"])

    cmd.extend([
        "-c:v", encoding.video_codec,
        "-c:a", encoding.audio_codec,
        str(params.output_file),
    ])
    return cmd


def parse_progress_time(line: str) -> Optional[float]:
    """Returns elapsed output seconds from an ffmpeg status line, or None."""
    match = TIME_REGEX.search(line)
    if not match:
        return None
    h, m, s = match.groups()
    return int(h) * 3600 + int(m) * 60 + float(s)


def compute_percent(elapsed: float, window_end: Optional[float], window_start: float = 0.0) -> float:
    """Percentage of the [window_start, window_end] span covered by elapsed.

    Clamped to [0, 100]; 0.0 when the window is unknown or empty.
    """
    if window_end is None:
        return 0.0
    window = window_end - window_start
    if window <= 0:
        return 0.0
    percent = (elapsed - window_start) / window * 100.0
    return max(0.0, min(100.0, percent))


class FFmpegAdapter:
    """Wrapper around ffmpeg for trimming and subtitle burn-in."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def build_command(self, params: ProcessingParams) -> List[str]:
        return build_command(params, self.config.encoding, self.config.tools.ffmpeg)

    def spawn(self, params: ProcessingParams) -> subprocess.Popen:
        """Launches ffmpeg with stderr merged into a line-buffered text pipe.

        Tags and filenames come through as raw bytes; undecodable bytes are
        replaced. On POSIX the child gets its own session so the whole process
        group can be signalled on cancel. Raises SpawnError when launch fails.
        """
        cmd = self.build_command(params)
        self.logger.debug(f"FFMPEG_CMD: {' '.join(cmd)}")
        try:
            return subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=(os.name == "posix"),
            )
        except OSError as exc:
            self.logger.error(f"FFMPEG_SPAWN_FAIL: {cmd[0]} ({exc})")
            raise SpawnError(cmd[0], exc.strerror or str(exc)) from exc
