"""CLI entry point for crunch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer

from crunch import __version__
from crunch.config import CrunchConfig, build_options, load_config, merge_config
from crunch.dispatcher import BatchReport, run_batch
from crunch.errors import ToolNotFound
from crunch.logging_setup import setup_logging
from crunch.reporter import LogReporter, ProgressReporter, Reporter, format_summary
from crunch.scanner import MediaKind, discover_all
from crunch.tool import resolve_tool

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "crunch.toml"

# Batches run in this order.
KIND_ORDER = (MediaKind.IMAGE, MediaKind.VIDEO, MediaKind.AUDIO)

app = typer.Typer(
    name="crunch",
    help="A fast, parallel media compression tool powered by FFmpeg.",
    invoke_without_command=True,
    no_args_is_help=True,
)


def _resolve_config_path(config: Optional[str]) -> Path | None:
    """Resolve the config file path, falling back to ./crunch.toml if present."""
    if config is not None:
        path = Path(config)
        if not path.exists():
            typer.echo(f"Error: Config file not found: {path}", err=True)
            raise typer.Exit(code=1)
        return path
    default = Path(DEFAULT_CONFIG_NAME)
    if default.exists():
        return default
    return None


def _build_config(config_path: Path | None, cli_overrides: dict[str, Any]) -> CrunchConfig:
    """Load TOML config (if any) and merge with CLI overrides."""
    file_config = load_config(config_path) if config_path is not None else {}
    return merge_config(file_config, cli_overrides)


def _selected_kinds(default: bool, videos: bool, images: bool, audios: bool) -> list[str] | None:
    """Return the kinds chosen on the command line, or None to defer to config."""
    if default:
        return [kind.value for kind in KIND_ORDER]
    chosen = []
    if images:
        chosen.append(MediaKind.IMAGE.value)
    if videos:
        chosen.append(MediaKind.VIDEO.value)
    if audios:
        chosen.append(MediaKind.AUDIO.value)
    return chosen or None


@app.command()
def run(
    input_dir: Optional[str] = typer.Argument(None, help="Directory to process (default: current directory)"),
    config: Optional[str] = typer.Option(None, "--config", help=f"Path to TOML config file (default: ./{DEFAULT_CONFIG_NAME} if present)"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Write outputs under this directory instead of beside the inputs"),
    default: bool = typer.Option(False, "--default", help="Compress all media with default formats (video: webm, image: webp, audio: mp3)"),
    videos: bool = typer.Option(False, "--videos", help="Compress videos"),
    images: bool = typer.Option(False, "--images", help="Compress images"),
    audios: bool = typer.Option(False, "--audios", help="Compress audio"),
    video_format: Optional[str] = typer.Option(None, "--video-format", help="Video output extension (default: webm)"),
    image_format: Optional[str] = typer.Option(None, "--image-format", help="Image output extension (default: webp)"),
    audio_format: Optional[str] = typer.Option(None, "--audio-format", help="Audio output extension (default: mp3)"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Output filename prefix, e.g. compressed (default: none)"),
    no_prefix: bool = typer.Option(False, "--no-prefix", help="Do not prefix output filenames"),
    level: Optional[str] = typer.Option(None, "--level", help="Compression level: low, medium or high"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Parallel ffmpeg processes (0 = CPU count)"),
    ffmpeg: Optional[str] = typer.Option(None, "--ffmpeg", help="Path to the ffmpeg executable (default: PATH lookup)"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override log level"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file"),
    keep_partial: bool = typer.Option(False, "--keep-partial", help="Keep outputs left behind by failed ffmpeg runs"),
    no_progress: bool = typer.Option(False, "--no-progress", help="Disable the progress bar"),
) -> None:
    """Compress media files found under INPUT_DIR."""
    config_path = _resolve_config_path(config)

    cli_overrides: dict[str, Any] = {
        "input_dir": input_dir,
        "output_dir": output_dir,
        "kinds": _selected_kinds(default, videos, images, audios),
        "prefix": "" if no_prefix else prefix,
        "level": level,
        "workers": workers,
        "ffmpeg": ffmpeg,
        "log_level": log_level,
        "log_file": log_file,
        "keep_partial": True if keep_partial else None,
        MediaKind.VIDEO.value: {"extension": video_format},
        MediaKind.IMAGE.value: {"extension": image_format},
        MediaKind.AUDIO.value: {"extension": audio_format},
    }

    try:
        cfg = _build_config(config_path, cli_overrides)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    setup_logging(cfg.log_level, cfg.log_file)

    if not cfg.kinds:
        typer.echo("No conversion specified. Use --help for usage.")
        return

    # Fail fast if ffmpeg cannot be found
    try:
        tool = resolve_tool(cfg.ffmpeg)
    except ToolNotFound as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    logger.info("crunch v%s: compressing %s", __version__, ", ".join(k.value for k in cfg.kinds))
    logger.info("Input: %s", cfg.input_dir)
    if cfg.output_dir is not None:
        logger.info("Output: %s", cfg.output_dir)
    logger.info("Using ffmpeg: %s", tool)

    reporter: Reporter = LogReporter() if no_progress else ProgressReporter()

    try:
        reports = _run_pipeline(cfg, tool, reporter)
    except ToolNotFound as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    typer.echo(format_summary(reports))


def _run_pipeline(cfg: CrunchConfig, tool: Path, reporter: Reporter) -> list[BatchReport]:
    """Discover files once, then run one batch per selected kind."""
    found = discover_all(cfg.input_dir)

    reports: list[BatchReport] = []
    for kind in KIND_ORDER:
        if kind not in cfg.kinds:
            continue

        files = _exclude_output_dir(found[kind], cfg.output_dir)
        if not files:
            logger.info("No %s files found to compress", kind.value)
            reports.append(BatchReport(kind=kind))
            continue

        options = build_options(cfg, kind)
        report = run_batch(
            tool,
            files,
            options,
            reporter,
            max_workers=cfg.workers or None,
            input_root=cfg.input_dir,
            keep_partial=cfg.keep_partial,
        )
        reports.append(report)

    return reports


def _exclude_output_dir(files: list[Path], output_dir: Path | None) -> list[Path]:
    """Drop files that live inside the output root from earlier runs."""
    if output_dir is None:
        return files
    root = output_dir.resolve()
    kept: list[Path] = []
    for path in files:
        if path.resolve().is_relative_to(root):
            continue
        kept.append(path)
    return kept


@app.command()
def scan(
    input_dir: Optional[str] = typer.Argument(None, help="Directory to scan (default: current directory)"),
) -> None:
    """List the media files that would be compressed, grouped by kind."""
    root = Path(input_dir) if input_dir is not None else Path(".")
    if not root.is_dir():
        typer.echo(f"Error: input_dir does not exist: {root}", err=True)
        raise typer.Exit(code=1)

    found = discover_all(root)
    for kind in KIND_ORDER:
        files = found[kind]
        typer.echo(f"{kind.value}: {len(files)} file(s)")
        for path in files:
            typer.echo(f"  {path.relative_to(root)}")


@app.command()
def version() -> None:
    """Print version information."""
    typer.echo(f"crunch {__version__}")


if __name__ == "__main__":
    app()
