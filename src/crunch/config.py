"""Configuration loading, merging, and validation."""

from __future__ import annotations

import dataclasses
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from crunch.options import (
    LEVELS,
    CompressionOptions,
    apply_level,
    default_options,
    option_fields,
    option_types,
)
from crunch.scanner import MediaKind

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class CrunchConfig:
    """Immutable configuration for a crunch run."""

    input_dir: Path
    output_dir: Path | None = None
    kinds: tuple[MediaKind, ...] = ()
    prefix: str | None = None
    level: str = "medium"
    workers: int = 0
    ffmpeg: Path | None = None
    log_level: str = "INFO"
    log_file: Path | None = None
    keep_partial: bool = False
    overrides: dict[MediaKind, dict[str, Any]] = field(default_factory=dict)


_DEFAULTS: dict[str, Any] = {
    "input_dir": ".",
    "kinds": [],
    "prefix": None,
    "level": "medium",
    "workers": 0,
    "log_level": "INFO",
    "keep_partial": False,
}

_PATH_KEYS = ("input_dir", "output_dir", "ffmpeg", "log_file")


def load_config(path: Path) -> dict[str, Any]:
    """Read a TOML config file and return a dict."""
    with path.open("rb") as f:
        return tomllib.load(f)


def merge_config(
    file_config: dict[str, Any],
    cli_overrides: dict[str, Any],
) -> CrunchConfig:
    """Merge defaults, file config, and CLI overrides into a validated config.

    Priority: defaults < file config < CLI overrides. Per-kind tables
    ([video], [image], [audio]) are merged key by key in the same order.
    The ffmpeg path falls back to the CRUNCH_FFMPEG environment variable.
    """
    merged: dict[str, Any] = {**_DEFAULTS}
    tables: dict[MediaKind, dict[str, Any]] = {kind: {} for kind in MediaKind}

    for source in (file_config, cli_overrides):
        for key, value in source.items():
            if value is None:
                continue
            kind = _table_kind(key)
            if kind is not None and isinstance(value, dict):
                tables[kind].update({k: v for k, v in value.items() if v is not None})
            else:
                merged[key] = value

    if not merged.get("ffmpeg"):
        env_ffmpeg = os.environ.get("CRUNCH_FFMPEG", "")
        if env_ffmpeg:
            merged["ffmpeg"] = env_ffmpeg

    # Non-path values are left as-is for _validate to report.
    for key in _PATH_KEYS:
        value = merged.get(key)
        if not value:
            merged[key] = None
        elif isinstance(value, (str, os.PathLike)):
            merged[key] = Path(value)

    return _validate(merged, tables)


def _table_kind(key: str) -> MediaKind | None:
    try:
        return MediaKind(key)
    except ValueError:
        return None


def _validate(
    merged: dict[str, Any],
    tables: dict[MediaKind, dict[str, Any]],
) -> CrunchConfig:
    """Validate the merged config and return a CrunchConfig."""
    errors: list[str] = []

    bad_paths = [
        key for key in _PATH_KEYS
        if merged[key] is not None and not isinstance(merged[key], Path)
    ]
    for key in bad_paths:
        errors.append(f"{key} must be a path string, got {merged[key]!r}")

    input_dir = merged["input_dir"]
    if input_dir is None:
        errors.append("input_dir is required")
    elif isinstance(input_dir, Path) and not input_dir.is_dir():
        errors.append(f"input_dir does not exist: {input_dir}")

    prefix = merged.get("prefix")
    if prefix is not None and not isinstance(prefix, str):
        errors.append(f"prefix must be a string, got {prefix!r}")

    kinds: list[MediaKind] = []
    raw_kinds = merged.get("kinds") or []
    if isinstance(raw_kinds, str):
        raw_kinds = [raw_kinds]
    for raw in raw_kinds:
        kind = raw if isinstance(raw, MediaKind) else _table_kind(str(raw).lower())
        if kind is None:
            errors.append(f"unknown media kind: {raw!r} (expected video, image or audio)")
        elif kind not in kinds:
            kinds.append(kind)

    level = str(merged.get("level", "medium")).lower()
    if level not in LEVELS:
        errors.append(f"level must be one of {', '.join(LEVELS)}, got {level!r}")

    try:
        workers = int(merged.get("workers", 0))
    except (TypeError, ValueError):
        errors.append(f"workers must be an integer, got {merged.get('workers')!r}")
        workers = 0
    if workers < 0:
        errors.append("workers must be >= 0")

    log_level = str(merged.get("log_level", "INFO")).upper()
    if log_level not in LOG_LEVELS:
        errors.append(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    for kind, table in tables.items():
        allowed = option_fields(kind) - {"output_dir"}
        unknown = sorted(set(table) - allowed)
        if unknown:
            errors.append(f"unknown [{kind.value}] option(s): {', '.join(unknown)}")
        types = option_types(kind)
        for name in sorted(set(table) & allowed):
            value = table[name]
            expected = tuple(t for t in types[name] if t is not type(None))
            # bool is an int subclass but never a valid option value
            if isinstance(value, bool) or not isinstance(value, expected):
                type_names = " or ".join(t.__name__ for t in expected)
                errors.append(
                    f"[{kind.value}] {name} must be {type_names}, got {value!r}"
                )
            elif name == "extension" and not value.strip().lstrip("."):
                errors.append(f"[{kind.value}] extension must not be empty")

    if errors:
        raise ValueError("Configuration errors:\n  " + "\n  ".join(errors))

    return CrunchConfig(
        input_dir=input_dir,
        output_dir=merged["output_dir"],
        kinds=tuple(kinds),
        prefix=prefix if prefix else None,
        level=level,
        workers=workers,
        ffmpeg=merged["ffmpeg"],
        log_level=log_level,
        log_file=merged["log_file"],
        keep_partial=bool(merged.get("keep_partial", False)),
        overrides={kind: table for kind, table in tables.items() if table},
    )


def build_options(cfg: CrunchConfig, kind: MediaKind) -> CompressionOptions:
    """Build the option object shared by every file of one batch.

    Layering: kind defaults < level preset < [kind] table. The run-wide
    prefix and output root apply unless the table sets its own prefix.
    """
    options = default_options(
        kind,
        prefix=cfg.prefix if cfg.prefix is not None else "",
        output_dir=cfg.output_dir,
    )
    options = apply_level(options, cfg.level)
    table = cfg.overrides.get(kind)
    if table:
        options = dataclasses.replace(options, **table)
    return options
