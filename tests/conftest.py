import os
import stat
import threading
import pytest
import yaml
from typing import List, Optional
from vtrim.config.models import AppConfig
from vtrim.infrastructure.event_bus import EventBus
from vtrim.domain.events import JobEvent

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Returns a sample AppConfig object for testing."""
    return AppConfig(
        tools={"ffmpeg": "ffmpeg", "ffprobe": "ffprobe"},
        encoding={"video_codec": "libx264", "audio_codec": "aac", "overwrite": True},
        jobs={
            "busy_policy": "reject",
            "cancel_grace_seconds": 2.0,
            "error_tail_lines": 3,
            "diagnostic_buffer_lines": 50,
            "probe_full_length": False,
        },
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "vtrim.yaml"

    content = {
        'tools': {
            'ffmpeg': '/opt/ffmpeg/bin/ffmpeg',
            'ffprobe': '/opt/ffmpeg/bin/ffprobe',
        },
        'encoding': {
            'video_codec': 'libx265',
            'audio_codec': 'copy',
        },
        'jobs': {
            'busy_policy': 'supersede',
            'cancel_grace_seconds': 3,
            'error_tail_lines': 10,
        },
        'logging': {
            'log_path': str(tmp_path / "logs" / "vtrim.log"),
            'debug': True,
        },
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()


class EventRecorder:
    """Collects every JobEvent published on a bus, in delivery order."""

    def __init__(self, bus: EventBus):
        self.events: List[JobEvent] = []
        self._cond = threading.Condition()
        self.subscription = bus.subscribe(JobEvent, self._record)

    def _record(self, event: JobEvent):
        with self._cond:
            self.events.append(event)
            self._cond.notify_all()

    def of_type(self, event_type):
        with self._cond:
            return [e for e in self.events if isinstance(e, event_type)]

    def wait_for(self, event_type, count: int = 1, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(
                lambda: sum(isinstance(e, event_type) for e in self.events) >= count,
                timeout=timeout,
            )


@pytest.fixture
def recorder(event_bus):
    """Records every job event published on the event_bus fixture."""
    return EventRecorder(event_bus)

# ============================================================================
# Subprocess stubs
# ============================================================================

class FakeProcess:
    """Stand-in for subprocess.Popen driven by the test.

    Lines pushed with emit() are yielded from stdout; exit() closes the
    stream and fixes the return code. terminate()/kill() record the call
    and, when configured, make the process exit with the given code.
    """

    _END = object()

    def __init__(self, pid: int = 4242, exit_on_signal: Optional[int] = -15):
        self.pid = pid
        self.returncode: Optional[int] = None
        self.exit_on_signal = exit_on_signal
        self.signals: List[str] = []
        self._lines: List[object] = []
        self._cond = threading.Condition()
        self._exited = threading.Event()
        self.stdout = self._iter_lines()

    def _iter_lines(self):
        while True:
            with self._cond:
                self._cond.wait_for(lambda: bool(self._lines))
                item = self._lines.pop(0)
            if item is self._END:
                return
            yield item

    def emit(self, *lines: str):
        with self._cond:
            for line in lines:
                self._lines.append(line + "\n")
            self._cond.notify_all()

    def exit(self, code: int):
        with self._cond:
            if self.returncode is None:
                self.returncode = code
                self._lines.append(self._END)
                self._cond.notify_all()
        self._exited.set()

    def signal(self, name: str):
        self.signals.append(name)
        if self.exit_on_signal is not None:
            self.exit(self.exit_on_signal)

    def terminate(self):
        self.signal("TERM")

    def kill(self):
        self.signal("KILL")

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if not self._exited.wait(timeout):
            raise TimeoutError("fake process still running")
        return self.returncode


@pytest.fixture
def fake_process():
    return FakeProcess()


@pytest.fixture
def killpg_to(monkeypatch):
    """Routes os.killpg in the job module to a FakeProcess."""
    from vtrim.pipeline import job as job_module

    def install(process: FakeProcess):
        def fake_killpg(pid, sig):
            assert pid == process.pid
            process.signal("KILL" if sig == job_module.SIGKILL else "TERM")
        monkeypatch.setattr(job_module.os, "killpg", fake_killpg)
        return process

    return install


@pytest.fixture
def tool_script(tmp_path):
    """Writes an executable shell script that stands in for ffmpeg or ffprobe."""
    if os.name != "posix":
        pytest.skip("shell-script tools need POSIX")

    def write(name: str, body: str):
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return write

# ============================================================================
# Marker registration
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
