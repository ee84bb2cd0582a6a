import subprocess
from unittest.mock import patch, MagicMock
from vtrim.config.models import ToolsConfig
from vtrim.infrastructure.tools import check_tools_available


def _result(code):
    result = MagicMock()
    result.returncode = code
    return result


def test_tools_available():
    with patch("subprocess.run", return_value=_result(0)) as mock_run:
        assert check_tools_available(ToolsConfig()) is True

    called = [c.args[0] for c in mock_run.call_args_list]
    assert called == [["ffmpeg", "-version"], ["ffprobe", "-version"]]


def test_tools_missing_ffprobe():
    def fake_run(cmd, **kwargs):
        if cmd[0] == "ffprobe":
            raise FileNotFoundError(2, "No such file or directory")
        return _result(0)

    with patch("subprocess.run", side_effect=fake_run):
        assert check_tools_available(ToolsConfig()) is False


def test_tools_non_zero_exit():
    with patch("subprocess.run", side_effect=[_result(0), _result(1)]):
        assert check_tools_available(ToolsConfig()) is False


def test_tools_timeout():
    with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("ffmpeg", 10)):
        assert check_tools_available(ToolsConfig()) is False


def test_tools_custom_paths():
    tools = ToolsConfig(ffmpeg="/opt/ff/ffmpeg", ffprobe="/opt/ff/ffprobe", version_timeout_s=2)
    with patch("subprocess.run", return_value=_result(0)) as mock_run:
        check_tools_available(tools)

    assert mock_run.call_args_list[0].args[0][0] == "/opt/ff/ffmpeg"
    assert mock_run.call_args_list[1].kwargs["timeout"] == 2
