import logging
import subprocess
from vtrim.config.models import ToolsConfig

logger = logging.getLogger(__name__)


def _tool_runs(executable: str, timeout: float) -> bool:
    try:
        result = subprocess.run([executable, "-version"], capture_output=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.warning(f"TOOL_MISSING: {executable} ({exc})")
        return False
    if result.returncode != 0:
        logger.warning(f"TOOL_BROKEN: {executable} -version exited with {result.returncode}")
        return False
    return True


def check_tools_available(tools: ToolsConfig) -> bool:
    """True only when both ffmpeg and ffprobe answer `-version` successfully."""
    # Run both so the log names every missing tool
    results = [_tool_runs(exe, tools.version_timeout_s) for exe in (tools.ffmpeg, tools.ffprobe)]
    return all(results)
