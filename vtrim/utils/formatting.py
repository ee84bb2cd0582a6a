import math
import re

def format_time(seconds: float) -> str:
    """M:SS for display; minutes are not wrapped into hours (7200 -> '120:00')."""
    minutes = math.floor(seconds / 60)
    secs = math.floor(math.fmod(seconds, 60))
    return f"{minutes}:{str(secs).rjust(2, '0')}"


def extract_file_name(path: str) -> str:
    """Last path component, accepting both / and \\ separators."""
    return re.split(r"[\\/]", path)[-1]
