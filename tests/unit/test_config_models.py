import pytest
from pathlib import Path
from pydantic import ValidationError
from vtrim.config.models import AppConfig, BusyPolicy, JobsConfig, EncodingConfig
from vtrim.config.loader import load_config

def test_valid_config():
    data = {
        "tools": {"ffmpeg": "/usr/local/bin/ffmpeg"},
        "encoding": {"video_codec": "libx265"},
        "jobs": {"busy_policy": "supersede", "cancel_grace_seconds": 2.5},
    }
    config = AppConfig(**data)
    assert config.tools.ffmpeg == "/usr/local/bin/ffmpeg"
    assert config.tools.ffprobe == "ffprobe"
    assert config.encoding.video_codec == "libx265"
    assert config.jobs.busy_policy == BusyPolicy.SUPERSEDE

def test_config_defaults():
    config = AppConfig()
    assert config.encoding.video_codec == "libx264"
    assert config.encoding.audio_codec == "aac"
    assert config.encoding.overwrite is True
    assert config.jobs.busy_policy == BusyPolicy.REJECT
    assert config.jobs.cancel_grace_seconds == 5.0
    assert config.jobs.error_tail_lines == 20
    assert config.logging.debug is False
    assert config.logging.resolved_path == Path("~/.vtrim/logs/vtrim.log").expanduser()

def test_invalid_busy_policy():
    with pytest.raises(ValidationError):
        JobsConfig(busy_policy="queue")

def test_invalid_grace_period():
    with pytest.raises(ValidationError):
        JobsConfig(cancel_grace_seconds=0)

def test_buffer_must_hold_error_tail():
    with pytest.raises(ValidationError):
        JobsConfig(error_tail_lines=50, diagnostic_buffer_lines=10)

def test_empty_codec_rejected():
    with pytest.raises(ValidationError):
        EncodingConfig(video_codec="  ")

def test_load_config(config_yaml_path, tmp_path):
    config = load_config(config_yaml_path)
    assert config.tools.ffmpeg == "/opt/ffmpeg/bin/ffmpeg"
    assert config.encoding.audio_codec == "copy"
    assert config.jobs.busy_policy == BusyPolicy.SUPERSEDE
    assert config.jobs.cancel_grace_seconds == 3
    assert config.logging.debug is True
    assert config.logging.resolved_path == tmp_path / "logs" / "vtrim.log"

def test_load_config_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")

def test_load_config_missing_allowed(tmp_path):
    config = load_config(tmp_path / "missing.yaml", allow_missing=True)
    assert config == AppConfig()

def test_load_config_empty_file(tmp_path):
    conf = tmp_path / "empty.yaml"
    conf.write_text("")
    assert load_config(conf) == AppConfig()

def test_shipped_config_matches_defaults():
    repo_root = Path(__file__).resolve().parents[2]
    assert load_config(repo_root / "conf" / "vtrim.yaml") == AppConfig()
