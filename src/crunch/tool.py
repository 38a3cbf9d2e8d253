"""Locating the ffmpeg executable."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path

from crunch.errors import ToolNotFound

logger = logging.getLogger(__name__)

TOOL_NAME = "ffmpeg.exe" if sys.platform == "win32" else "ffmpeg"


def resolve_tool(configured: Path | None = None) -> Path:
    """Return the ffmpeg path to use for every batch of a run.

    A configured path must exist. Without one, ffmpeg is looked up on PATH.
    Raises ToolNotFound when neither yields an executable.
    """
    if configured is not None:
        if configured.is_file():
            return configured
        raise ToolNotFound(configured)

    found = shutil.which("ffmpeg")
    if found is None:
        raise ToolNotFound(None)
    return Path(found)


def extract_tool(binary: bytes, name: str = TOOL_NAME) -> Path:
    """Write a bundled ffmpeg binary to a private temp dir and return its path.

    The directory is never removed: it must outlive every batch of the
    process, and cleanup is left to OS process teardown.
    """
    temp_dir = Path(tempfile.mkdtemp(prefix="crunch-"))
    tool_path = temp_dir / name
    tool_path.write_bytes(binary)
    if os.name != "nt":
        mode = tool_path.stat().st_mode
        tool_path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.debug("Extracted bundled ffmpeg to %s", tool_path)
    return tool_path
