import typer
from pathlib import Path
from typing import Optional
from pydantic import ValidationError
from rich.console import Console

from vtrim.config.loader import load_config
from vtrim.config.models import AppConfig, BusyPolicy
from vtrim.infrastructure.logging import setup_logging, get_log_file_path
from vtrim.infrastructure.event_bus import EventBus
from vtrim.domain.errors import ProbeError, VtrimError
from vtrim.domain.models import JobState, ProcessingParams
from vtrim.pipeline.processor import VideoProcessor
from vtrim.ui.progress import JobProgressView
from vtrim.utils.formatting import format_time, extract_file_name

app = typer.Typer(help="vtrim - trim videos and burn in subtitles with ffmpeg")

DEFAULT_CONFIG = Path("conf/vtrim.yaml")
EXIT_CANCELLED = 130


def _load(config_path: Path, debug: bool) -> AppConfig:
    try:
        # The default location is optional, an explicit --config is not
        config = load_config(config_path, allow_missing=(config_path == DEFAULT_CONFIG))
    except (FileNotFoundError, ValidationError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if debug:
        config.logging.debug = True
    setup_logging(config.logging.resolved_path, debug=config.logging.debug)
    return config


@app.command()
def check(
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Path to YAML config"),
):
    """Check that ffmpeg and ffprobe are installed."""
    config = _load(config_path, debug=False)
    if VideoProcessor(config).check_tools():
        typer.secho("ffmpeg and ffprobe are available.", fg=typer.colors.GREEN)
        return
    typer.secho(
        "FFmpeg or FFprobe not found in PATH. Please install FFmpeg and ensure it's "
        "accessible from the command line.",
        fg=typer.colors.RED,
        err=True,
    )
    raise typer.Exit(code=1)


@app.command()
def probe(
    file: Path = typer.Argument(..., help="Media file to inspect"),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Path to YAML config"),
):
    """Print the duration of a media file."""
    config = _load(config_path, debug=False)
    try:
        seconds = VideoProcessor(config).probe_duration(file)
    except ProbeError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{extract_file_name(str(file))}: {format_time(seconds)} ({seconds:.3f}s)")


@app.command()
def process(
    input_file: Path = typer.Argument(..., help="Source video"),
    output_file: Path = typer.Argument(..., help="Destination video (mp4, avi, mov, mkv, webm)"),
    start: Optional[float] = typer.Option(None, "--start", "-s", help="Trim start in seconds"),
    end: Optional[float] = typer.Option(None, "--end", "-e", help="Trim end in seconds"),
    subtitles: Optional[Path] = typer.Option(None, "--subtitles", help="Subtitle file to burn in"),
    supersede: bool = typer.Option(False, "--supersede", help="Cancel a running job instead of refusing to start"),
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Path to YAML config"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Trim a video and optionally burn in subtitles."""
    config = _load(config_path, debug)
    if supersede:
        config.jobs.busy_policy = BusyPolicy.SUPERSEDE

    try:
        params = ProcessingParams(
            input_file=input_file,
            output_file=output_file,
            start_time=start,
            end_time=end,
            subtitle_file=subtitles,
        )
    except ValidationError as exc:
        for err in exc.errors():
            typer.secho(f"Error: {err['msg']}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    bus = EventBus()
    processor = VideoProcessor(config, event_bus=bus)
    console = Console(stderr=True)

    with JobProgressView(bus, console=console, label=extract_file_name(str(input_file))) as view:
        try:
            job_id = processor.start(params)
        except VtrimError as exc:
            typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        view.track(job_id)

        try:
            while not view.finished.wait(0.2):
                pass
        except KeyboardInterrupt:
            processor.cancel(job_id)
            view.finished.wait(config.jobs.cancel_grace_seconds + 5)

    if view.outcome == JobState.COMPLETED:
        typer.secho(f"Done: {output_file}", fg=typer.colors.GREEN)
        return
    if view.outcome == JobState.CANCELLED:
        typer.secho("Cancelled.", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=EXIT_CANCELLED)
    typer.secho(f"Error: {view.error_detail or 'processing did not finish'}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.command("log-path")
def log_path(
    config_path: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Path to YAML config"),
):
    """Print where vtrim writes its log."""
    try:
        config = load_config(config_path, allow_missing=(config_path == DEFAULT_CONFIG))
    except (FileNotFoundError, ValidationError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(str(get_log_file_path(config.logging)))


if __name__ == "__main__":
    app()
