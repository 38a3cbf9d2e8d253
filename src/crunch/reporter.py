"""Progress reporting and batch summaries."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from io import StringIO
from typing import TYPE_CHECKING, Protocol

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from crunch.scanner import MediaKind

if TYPE_CHECKING:
    from crunch.dispatcher import BatchReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileEvent:
    """Completion of one file within a batch."""

    name: str
    ok: bool
    duration_secs: float
    error: str | None = None


class Reporter(Protocol):
    """Sink for batch progress. Implementations must be thread-safe."""

    def batch_started(self, kind: MediaKind, total: int) -> None: ...

    def file_finished(self, event: FileEvent) -> None: ...

    def batch_finished(self, report: BatchReport) -> None: ...


class LogReporter:
    """Reporter that only writes log lines."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def batch_started(self, kind: MediaKind, total: int) -> None:
        with self._lock:
            logger.info("Compressing %d %s file(s)", total, kind.value)

    def file_finished(self, event: FileEvent) -> None:
        with self._lock:
            _log_event(event)

    def batch_finished(self, report: BatchReport) -> None:
        with self._lock:
            _log_batch_summary(report)


class ProgressReporter:
    """Reporter that drives a rich progress bar alongside log lines.

    A single lock serialises every call so concurrent callers cannot
    interleave bar updates and log output.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console
        self._lock = threading.Lock()
        self._progress: Progress | None = None
        self._task: int | None = None

    def batch_started(self, kind: MediaKind, total: int) -> None:
        with self._lock:
            self._stop()
            progress = Progress(
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TextColumn("{task.fields[current_file]}"),
                TimeElapsedColumn(),
                console=self._console,
            )
            progress.start()
            self._task = progress.add_task(
                f"Compressing {kind.value}",
                total=total,
                current_file="",
            )
            self._progress = progress

    def file_finished(self, event: FileEvent) -> None:
        with self._lock:
            _log_event(event)
            if self._progress is not None and self._task is not None:
                self._progress.update(self._task, current_file=event.name)
                self._progress.advance(self._task)

    def batch_finished(self, report: BatchReport) -> None:
        with self._lock:
            self._stop()
            _log_batch_summary(report)

    def _stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None


def _log_event(event: FileEvent) -> None:
    if event.ok:
        logger.info("Finished: %s (took %s)", event.name, format_duration(event.duration_secs))
    else:
        logger.warning("FAILED: %s: %s", event.name, event.error)


def _log_batch_summary(report: BatchReport) -> None:
    logger.info(
        "%s compression complete: %d succeeded, %d failed",
        report.kind.value.capitalize(),
        report.succeeded,
        report.failed,
    )


def format_summary(reports: Iterable[BatchReport]) -> str:
    """Render per-kind batch results as a rich table."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=False, width=100)

    table = Table(title="Compression Summary", show_header=True, header_style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Succeeded", justify="right")
    table.add_column("Failed", justify="right")

    total = succeeded = failed = 0
    for report in reports:
        table.add_row(
            report.kind.value,
            str(report.total),
            str(report.succeeded),
            str(report.failed),
        )
        total += report.total
        succeeded += report.succeeded
        failed += report.failed

    table.add_row("All", str(total), str(succeeded), str(failed), style="bold")
    console.print(table)
    return buf.getvalue()


def format_duration(seconds: float) -> str:
    """Format seconds into a human-readable string."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"
