"""Tests for progress reporters and summary formatting."""

from __future__ import annotations

import logging
import threading
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from crunch.dispatcher import BatchReport, Failure, Success
from crunch.reporter import (
    FileEvent,
    LogReporter,
    ProgressReporter,
    format_duration,
    format_summary,
)
from crunch.scanner import MediaKind


def _report(kind: MediaKind, ok: int, failed: int) -> BatchReport:
    results: list[Success | Failure] = []
    for i in range(ok):
        results.append(Success(Path(f"ok{i}"), Path(f"out{i}"), 1.0))
    for i in range(failed):
        results.append(Failure(Path(f"bad{i}"), "error", 1.0))
    return BatchReport(kind=kind, results=results)


# --- format_summary ---


class TestFormatSummary:
    def test_contains_rows_per_kind(self) -> None:
        output = format_summary([
            _report(MediaKind.IMAGE, ok=4, failed=1),
            _report(MediaKind.VIDEO, ok=2, failed=0),
        ])
        assert "Compression Summary" in output
        assert "image" in output
        assert "video" in output
        assert "audio" not in output

    def test_totals_row(self) -> None:
        output = format_summary([
            _report(MediaKind.IMAGE, ok=4, failed=1),
            _report(MediaKind.AUDIO, ok=3, failed=2),
        ])
        totals = [line for line in output.splitlines() if "All" in line]
        assert len(totals) == 1
        assert "10" in totals[0]
        assert "7" in totals[0]
        assert "3" in totals[0]

    def test_empty(self) -> None:
        output = format_summary([])
        assert "All" in output


# --- format_duration ---


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0.0, "0.0s"),
        (12.34, "12.3s"),
        (90.0, "1m 30s"),
        (3725.0, "1h 2m"),
    ],
)
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


# --- LogReporter ---


class TestLogReporter:
    def test_logs_events_and_summary(self, caplog: pytest.LogCaptureFixture) -> None:
        reporter = LogReporter()
        with caplog.at_level(logging.INFO, logger="crunch.reporter"):
            reporter.batch_started(MediaKind.VIDEO, 2)
            reporter.file_finished(FileEvent("a.mp4", True, 2.5))
            reporter.file_finished(FileEvent("b.mp4", False, 0.1, "Invalid data"))
            reporter.batch_finished(_report(MediaKind.VIDEO, ok=1, failed=1))

        text = caplog.text
        assert "Compressing 2 video file(s)" in text
        assert "Finished: a.mp4 (took 2.5s)" in text
        assert "FAILED: b.mp4: Invalid data" in text
        assert "1 succeeded, 1 failed" in text

        failed_records = [r for r in caplog.records if "FAILED" in r.getMessage()]
        assert failed_records[0].levelno == logging.WARNING


# --- ProgressReporter ---


class TestProgressReporter:
    def _console(self) -> Console:
        return Console(file=StringIO(), force_terminal=False, width=100)

    def test_progress_advances_per_event(self) -> None:
        reporter = ProgressReporter(console=self._console())
        reporter.batch_started(MediaKind.IMAGE, 3)
        for name in ("a.jpg", "b.jpg", "c.jpg"):
            reporter.file_finished(FileEvent(name, True, 0.1))

        progress = reporter._progress
        assert progress is not None
        assert progress.tasks[0].completed == 3
        assert progress.tasks[0].total == 3

        reporter.batch_finished(_report(MediaKind.IMAGE, ok=3, failed=0))
        assert reporter._progress is None

    def test_concurrent_callers(self) -> None:
        reporter = ProgressReporter(console=self._console())
        reporter.batch_started(MediaKind.AUDIO, 200)

        def worker(offset: int) -> None:
            for i in range(25):
                reporter.file_finished(FileEvent(f"f{offset}-{i}.mp3", i % 5 != 0, 0.01))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        progress = reporter._progress
        assert progress is not None
        assert progress.tasks[0].completed == 200
        reporter.batch_finished(_report(MediaKind.AUDIO, ok=160, failed=40))

    def test_new_batch_replaces_previous_bar(self) -> None:
        reporter = ProgressReporter(console=self._console())
        reporter.batch_started(MediaKind.IMAGE, 1)
        first = reporter._progress
        reporter.batch_started(MediaKind.VIDEO, 5)
        assert reporter._progress is not first
        assert reporter._progress is not None
        assert reporter._progress.tasks[0].total == 5
        reporter.batch_finished(_report(MediaKind.VIDEO, ok=0, failed=0))
