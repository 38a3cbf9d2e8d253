"""ffmpeg invocation: one process per input file."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from crunch.errors import InvalidPath, ToolNotFound, TranscodeFailed
from crunch.options import (
    AudioOptions,
    CompressionOptions,
    ImageOptions,
    VideoOptions,
    resolve_output_path,
)

logger = logging.getLogger(__name__)

# Fixed encoder settings shared by every video batch.
VIDEO_PIXEL_FORMAT = "yuv420p"
VIDEO_CPU_USED = "4"
VIDEO_ROW_MT = "1"
VIDEO_AUDIO_CODEC = "libopus"
VIDEO_AUDIO_BITRATE = "64k"

IMAGE_CODEC = "libwebp"


def _path_arg(path: Path, input_path: Path) -> str:
    """Return path as a process argument, rejecting unencodable names."""
    text = str(path)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidPath(input_path, f"not representable as UTF-8 ({e.reason})") from e
    if "\x00" in text:
        raise InvalidPath(input_path, "contains a NUL byte")
    return text


def build_command(
    tool: Path,
    input_path: Path,
    output_path: Path,
    options: CompressionOptions,
) -> list[str]:
    """Build the ffmpeg argument vector for one file.

    Raises InvalidPath if either path cannot be passed to the process.
    """
    src = _path_arg(input_path, input_path)
    dst = _path_arg(output_path, input_path)

    match options:
        case VideoOptions():
            args = [
                "-i", src,
                "-c:v", options.video_codec,
                # Broad player/browser compatibility
                "-pix_fmt", VIDEO_PIXEL_FORMAT,
                # Constant-quality mode needs -b:v 0 alongside -crf
                "-b:v", "0",
                "-crf", str(options.crf),
                "-deadline", options.preset,
                "-cpu-used", VIDEO_CPU_USED,
                "-row-mt", VIDEO_ROW_MT,
                "-c:a", VIDEO_AUDIO_CODEC,
                "-b:a", VIDEO_AUDIO_BITRATE,
            ]
        case ImageOptions():
            args = [
                "-i", src,
                "-c:v", IMAGE_CODEC,
                "-quality", str(options.quality),
                "-compression_level", str(options.compression_level),
            ]
        case AudioOptions():
            args = [
                "-i", src,
                "-c:a", options.audio_codec,
                "-b:a", options.bitrate,
            ]
            if options.channels is not None:
                args += ["-ac", str(options.channels)]
            if options.sample_rate is not None:
                args += ["-ar", str(options.sample_rate)]
        case _:
            raise TypeError(f"Unsupported options type: {type(options).__name__}")

    return [str(tool), *args, "-y", dst]


def transcode(
    tool: Path,
    input_path: Path,
    options: CompressionOptions,
    input_root: Path | None = None,
    *,
    keep_partial: bool = False,
) -> Path:
    """Compress a single file with ffmpeg and return the output path.

    Runs the tool exactly once. Raises ToolNotFound before spawning anything
    if the tool is missing, InvalidPath for unusable paths and
    TranscodeFailed when the process exits non-zero. Unless keep_partial is
    set, an output file created by a failed run is removed; a file that was
    already at the target path before the run is left alone.
    """
    if not tool.is_file():
        raise ToolNotFound(tool)

    output_path = resolve_output_path(input_path, options, input_root)
    cmd = build_command(tool, input_path, output_path, options)

    if options.output_dir is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)

    existed_before = output_path.exists()
    logger.debug("Running: %s", " ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            stdin=subprocess.DEVNULL,
        )
    except OSError as e:
        raise TranscodeFailed(input_path, f"could not execute {tool}: {e}") from e

    if result.returncode != 0:
        if not keep_partial and not existed_before:
            _remove_partial(output_path)
        stderr = result.stderr.decode("utf-8", errors="replace")
        raise TranscodeFailed(input_path, stderr, result.returncode)

    return output_path


def _remove_partial(output_path: Path) -> None:
    """Delete an output left behind by a failed run."""
    try:
        output_path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove partial output %s", output_path)
