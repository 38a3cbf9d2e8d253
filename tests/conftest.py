"""Shared test fixtures for crunch."""

from __future__ import annotations

import logging
import stat
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import pytest
import tomli_w
from rich.logging import RichHandler

from crunch.reporter import FileEvent
from crunch.scanner import MediaKind

# Copies the input to the output, or fails for inputs whose name contains
# "fail". The output is always the last argument, the input follows -i.
_FAKE_FFMPEG = """\
#!/bin/sh
prev=""
src=""
dst=""
for arg in "$@"; do
  if [ "$prev" = "-i" ]; then src="$arg"; fi
  prev="$arg"
  dst="$arg"
done
case "$(basename "$src")" in
  *fail*)
    echo "simulated encoder error for $src" >&2
    exit 1
    ;;
esac
cp "$src" "$dst"
"""

# Writes a truncated output and then fails.
_PARTIAL_FFMPEG = """\
#!/bin/sh
dst=""
for arg in "$@"; do dst="$arg"; done
echo "partial" > "$dst"
echo "muxer error" >&2
exit 1
"""


def _write_script(path: Path, body: str) -> Path:
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def tmp_input_dir(tmp_path: Path) -> Path:
    """Create a temporary input directory."""
    d = tmp_path / "input"
    d.mkdir()
    return d


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory."""
    d = tmp_path / "output"
    d.mkdir()
    return d


@pytest.fixture
def fake_ffmpeg(tmp_path: Path) -> Path:
    """An executable that behaves like a successful ffmpeg unless told to fail."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)
    return _write_script(bin_dir / "ffmpeg", _FAKE_FFMPEG)


@pytest.fixture
def partial_ffmpeg(tmp_path: Path) -> Path:
    """An executable that leaves a partial output behind and exits 1."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)
    return _write_script(bin_dir / "ffmpeg-partial", _PARTIAL_FFMPEG)


@pytest.fixture
def sample_config_dict(tmp_input_dir: Path) -> dict[str, Any]:
    """Return a minimal valid config dict."""
    return {
        "input_dir": str(tmp_input_dir),
        "kinds": ["image"],
    }


@pytest.fixture
def sample_config_file(
    tmp_path: Path, sample_config_dict: dict[str, Any]
) -> Path:
    """Write a sample config TOML file and return its path."""
    config_path = tmp_path / "crunch.toml"
    config_path.write_bytes(tomli_w.dumps(sample_config_dict).encode())
    return config_path


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Remove the handlers installed by setup_logging() after a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler, (RichHandler, RotatingFileHandler)):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class RecordingReporter:
    """Reporter that records every call, in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.events: list[FileEvent] = []

    def batch_started(self, kind: MediaKind, total: int) -> None:
        self.calls.append(("batch_started", (kind, total)))

    def file_finished(self, event: FileEvent) -> None:
        self.calls.append(("file_finished", event))
        self.events.append(event)

    def batch_finished(self, report: Any) -> None:
        self.calls.append(("batch_finished", report))


@pytest.fixture
def recording_reporter() -> RecordingReporter:
    return RecordingReporter()
