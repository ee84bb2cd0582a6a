import yaml
from pathlib import Path
from .models import AppConfig

def load_config(config_path: Path, allow_missing: bool = False) -> AppConfig:
    """Loads YAML config and parses it into AppConfig Pydantic model.

    With allow_missing=True a missing file yields the built-in defaults.
    """
    if not config_path.exists():
        if allow_missing:
            return AppConfig()
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return AppConfig(**data)
