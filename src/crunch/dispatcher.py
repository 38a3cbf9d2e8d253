"""Parallel dispatch of one batch of files to the transcoder."""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from crunch.errors import CrunchFileError, ToolNotFound
from crunch.options import CompressionOptions
from crunch.reporter import FileEvent, Reporter
from crunch.scanner import MediaKind
from crunch.transcoder import transcode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    """A file that was compressed."""

    input_path: Path
    output_path: Path
    duration_secs: float = 0.0

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """A file that could not be compressed."""

    input_path: Path
    error: str
    duration_secs: float = 0.0

    @property
    def ok(self) -> bool:
        return False


CompressionResult = Union[Success, Failure]


@dataclass
class BatchReport:
    """Outcome of one batch. results are in completion order."""

    kind: MediaKind
    results: list[CompressionResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def failures(self) -> list[Failure]:
        return [r for r in self.results if isinstance(r, Failure)]

    @property
    def has_failures(self) -> bool:
        return self.failed > 0


def default_workers() -> int:
    """Worker count matching the host's available parallelism."""
    return os.cpu_count() or 1


def _compress_one(
    tool: Path,
    input_path: Path,
    options: CompressionOptions,
    input_root: Path | None,
    keep_partial: bool,
) -> CompressionResult:
    """Run one file from Pending to a terminal result. Never raises."""
    logger.debug("Processing: %s", input_path.name)
    start = time.monotonic()
    try:
        output_path = transcode(
            tool, input_path, options, input_root, keep_partial=keep_partial
        )
    except (CrunchFileError, ToolNotFound) as e:
        return Failure(input_path, str(e), time.monotonic() - start)
    except Exception as e:
        logger.exception("Unexpected error compressing %s", input_path)
        return Failure(input_path, f"{type(e).__name__}: {e}", time.monotonic() - start)
    return Success(input_path, output_path, time.monotonic() - start)


def run_batch(
    tool: Path,
    files: list[Path],
    options: CompressionOptions,
    reporter: Reporter | None = None,
    *,
    max_workers: int | None = None,
    input_root: Path | None = None,
    keep_partial: bool = False,
) -> BatchReport:
    """Compress every file concurrently and return one result per file.

    An empty file list returns an empty report without touching the tool or
    the reporter. A missing tool raises ToolNotFound before any work starts.
    Per-file failures are recorded in the report and never raised.
    """
    report = BatchReport(kind=options.kind)
    if not files:
        return report

    if not tool.is_file():
        raise ToolNotFound(tool)

    workers = max_workers if max_workers and max_workers > 0 else default_workers()
    workers = min(workers, len(files))

    logger.info(
        "Found %d %s file(s) to compress to %s (%d workers)",
        len(files),
        options.kind.value,
        options.extension,
        workers,
    )
    if reporter is not None:
        reporter.batch_started(options.kind, len(files))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_compress_one, tool, path, options, input_root, keep_partial)
            for path in files
        ]

        # Completion order, consumed by this thread only.
        for future in as_completed(futures):
            result = future.result()
            report.results.append(result)
            if reporter is not None:
                reporter.file_finished(FileEvent(
                    name=result.input_path.name,
                    ok=result.ok,
                    duration_secs=result.duration_secs,
                    error=result.error if isinstance(result, Failure) else None,
                ))

    if report.has_failures:
        logger.warning(
            "%d of %d %s file(s) failed to compress",
            report.failed,
            report.total,
            options.kind.value,
        )
    if reporter is not None:
        reporter.batch_finished(report)
    return report
