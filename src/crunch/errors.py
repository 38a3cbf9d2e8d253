"""Exception types raised by the compression pipeline.

ToolNotFound is fatal for a whole batch. Subclasses of CrunchFileError are
scoped to a single input file and end up as that file's failure entry in
the batch report.
"""

from __future__ import annotations

from pathlib import Path


class CrunchError(Exception):
    """Base class for crunch errors."""


class ToolNotFound(CrunchError):
    """The external transcoder executable does not exist."""

    def __init__(self, path: Path | str | None) -> None:
        self.path = path
        if path is None:
            message = "ffmpeg executable not found (not configured and not on PATH)"
        else:
            message = f"ffmpeg executable not found at: {path}"
        super().__init__(message)


class CrunchFileError(CrunchError):
    """An error that only affects one input file."""

    def __init__(self, input_path: Path, message: str) -> None:
        self.input_path = input_path
        super().__init__(message)


class InvalidPath(CrunchFileError):
    """A path cannot be passed to the external process."""

    def __init__(self, input_path: Path, reason: str) -> None:
        super().__init__(input_path, f"Invalid path {input_path!r}: {reason}")


class TranscodeFailed(CrunchFileError):
    """The external process exited with a failure status."""

    def __init__(self, input_path: Path, stderr: str, returncode: int | None = None) -> None:
        self.stderr = stderr
        self.returncode = returncode
        lines = [line for line in stderr.strip().splitlines() if line.strip()]
        detail = lines[-1] if lines else "no diagnostic output"
        if returncode is not None:
            message = f"Failed to compress {input_path} (exit code {returncode}): {detail}"
        else:
            message = f"Failed to compress {input_path}: {detail}"
        super().__init__(input_path, message)
