"""Directory walking and media file discovery."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path


class MediaKind(Enum):
    """Media classification derived from a file extension."""

    VIDEO = "video"
    IMAGE = "image"
    AUDIO = "audio"


VIDEO_EXTENSIONS: frozenset[str] = frozenset({
    # Common
    ".mp4", ".avi", ".mkv", ".mov", ".wmv", ".flv",
    # Web
    ".webm", ".ogv",
    # Other
    ".mpeg", ".mpg", ".m4v", ".3gp", ".3g2", ".vob",
    # Broadcast / transport
    ".ts", ".m2ts", ".mts", ".mxf",
    # Professional / raw
    ".r3d", ".braw",
})

IMAGE_EXTENSIONS: frozenset[str] = frozenset({
    # Common
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp",
    # Other
    ".tiff", ".tif", ".ico", ".svg",
    # Modern
    ".avif", ".heic", ".heif",
    # Raw
    ".raw", ".cr2", ".nef", ".arw", ".dng",
})

AUDIO_EXTENSIONS: frozenset[str] = frozenset({
    # Common
    ".mp3", ".wav", ".aac", ".ogg", ".flac", ".wma",
    # Modern / web
    ".opus", ".m4a",
    # Lossless
    ".aiff", ".aif", ".alac", ".ape", ".wv",
    # Other
    ".m4b", ".m4r", ".amr", ".mid", ".midi",
    # Surround / professional
    ".ac3", ".dts", ".eac3", ".mka",
    # Legacy
    ".ra", ".rm", ".au", ".gsm", ".voc", ".tta", ".snd",
})

EXTENSIONS: dict[MediaKind, frozenset[str]] = {
    MediaKind.VIDEO: VIDEO_EXTENSIONS,
    MediaKind.IMAGE: IMAGE_EXTENSIONS,
    MediaKind.AUDIO: AUDIO_EXTENSIONS,
}


def classify(path: Path | str) -> MediaKind | None:
    """Return the media kind for a path based on its extension only.

    Matching is case-insensitive. File contents are never inspected, so a
    misnamed file is classified by its name. Returns None when the path has
    no extension or the extension is not in any table.
    """
    suffix = Path(path).suffix.lower()
    if not suffix:
        return None
    for kind, extensions in EXTENSIONS.items():
        if suffix in extensions:
            return kind
    return None


def _walk_files(root: Path) -> list[Path]:
    """Return every regular file below root.

    os.walk ignores errors by default, so unreadable directories are
    skipped and a missing root yields nothing.
    """
    files: list[Path] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        for name in filenames:
            candidate = base / name
            try:
                if candidate.is_file():
                    files.append(candidate)
            except OSError:
                continue
    return files


def discover(root: Path, kind: MediaKind) -> list[Path]:
    """Walk root recursively and return files classified as kind.

    Results are sorted for deterministic ordering.
    """
    files = [p for p in _walk_files(root) if classify(p) is kind]
    files.sort()
    return files


def discover_all(root: Path) -> dict[MediaKind, list[Path]]:
    """Single-walk variant of discover() covering every media kind."""
    found: dict[MediaKind, list[Path]] = {kind: [] for kind in MediaKind}
    for path in _walk_files(root):
        kind = classify(path)
        if kind is not None:
            found[kind].append(path)
    for paths in found.values():
        paths.sort()
    return found
