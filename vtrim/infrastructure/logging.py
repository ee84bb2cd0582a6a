import logging
from pathlib import Path
from vtrim.config.models import LoggingConfig

def setup_logging(log_path: Path, debug: bool = False) -> logging.Logger:
    """
    Setup logging configuration for vtrim.

    Creates the log directory and appends to the log file; nothing is ever
    truncated, the log is the only thing vtrim persists.
    Returns configured logger instance.

    Args:
        log_path: Path to the log file
        debug: If True, enable DEBUG level logging (ffmpeg command lines etc.)
    """
    log_file = Path(log_path).expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Configure logging level
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file, mode='a')],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger


def get_log_file_path(config: LoggingConfig) -> Path:
    """Where setup_logging writes for the given config."""
    return config.resolved_path
