"""Per-kind compression options and output path resolution."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union, get_args, get_type_hints

from crunch.scanner import MediaKind

DEFAULT_PREFIX = "compressed"
COLLISION_PREFIX = "compressed_"
FALLBACK_STEM = "output"

LEVELS = ("low", "medium", "high")


@dataclass(frozen=True)
class _BaseOptions:
    """Fields shared by every option variant."""

    extension: str = ""
    prefix: str | None = DEFAULT_PREFIX
    output_dir: Path | None = None

    def __post_init__(self) -> None:
        extension = self.extension.strip().lstrip(".")
        if not extension:
            raise ValueError(f"{type(self).__name__}: output extension must not be empty")
        object.__setattr__(self, "extension", extension)
        if self.prefix == "":
            object.__setattr__(self, "prefix", None)
        if self.output_dir is not None and not isinstance(self.output_dir, Path):
            object.__setattr__(self, "output_dir", Path(self.output_dir))


@dataclass(frozen=True)
class VideoOptions(_BaseOptions):
    """Options for video batches. Lower crf means higher quality."""

    extension: str = "webm"
    crf: int = 42
    preset: str = "good"
    video_codec: str = "libvpx-vp9"

    @property
    def kind(self) -> MediaKind:
        return MediaKind.VIDEO


@dataclass(frozen=True)
class ImageOptions(_BaseOptions):
    extension: str = "webp"
    quality: int = 1
    compression_level: int = 6

    @property
    def kind(self) -> MediaKind:
        return MediaKind.IMAGE


@dataclass(frozen=True)
class AudioOptions(_BaseOptions):
    """Options for audio batches. None channels/sample_rate keeps the source's."""

    extension: str = "mp3"
    bitrate: str = "64k"
    audio_codec: str = "libmp3lame"
    channels: int | None = None
    sample_rate: int | None = None

    @property
    def kind(self) -> MediaKind:
        return MediaKind.AUDIO


CompressionOptions = Union[VideoOptions, ImageOptions, AudioOptions]

_OPTION_TYPES: dict[MediaKind, type[CompressionOptions]] = {
    MediaKind.VIDEO: VideoOptions,
    MediaKind.IMAGE: ImageOptions,
    MediaKind.AUDIO: AudioOptions,
}

# "medium" is the plain defaults, so it carries no overrides.
_LEVEL_PRESETS: dict[MediaKind, dict[str, dict[str, Any]]] = {
    MediaKind.VIDEO: {
        "low": {"crf": 32},
        "medium": {},
        "high": {"crf": 50},
    },
    MediaKind.IMAGE: {
        "low": {"quality": 60, "compression_level": 4},
        "medium": {},
        "high": {"quality": 0, "compression_level": 6},
    },
    MediaKind.AUDIO: {
        "low": {"bitrate": "128k"},
        "medium": {},
        "high": {"bitrate": "32k"},
    },
}


def option_fields(kind: MediaKind) -> frozenset[str]:
    """Return the field names accepted by the option type for kind."""
    return frozenset(f.name for f in dataclasses.fields(_OPTION_TYPES[kind]))


def option_types(kind: MediaKind) -> dict[str, tuple[type, ...]]:
    """Return the accepted value types for each option field of kind."""
    hints = get_type_hints(_OPTION_TYPES[kind])
    return {
        name: get_args(hints[name]) or (hints[name],)
        for name in option_fields(kind)
    }


def default_options(kind: MediaKind, **overrides: Any) -> CompressionOptions:
    """Build the default options for kind, applying non-None overrides.

    Raises ValueError for override names the kind does not support.
    """
    option_type = _OPTION_TYPES[kind]
    allowed = option_fields(kind)
    unknown = sorted(set(overrides) - allowed)
    if unknown:
        raise ValueError(
            f"Unknown {kind.value} option(s): {', '.join(unknown)}"
        )
    values = {k: v for k, v in overrides.items() if v is not None}
    return option_type(**values)


def apply_level(options: CompressionOptions, level: str) -> CompressionOptions:
    """Return a copy of options adjusted for a compression level preset."""
    presets = _LEVEL_PRESETS[options.kind]
    if level not in presets:
        raise ValueError(
            f"Unknown compression level {level!r} (expected one of: {', '.join(LEVELS)})"
        )
    return dataclasses.replace(options, **presets[level])


def resolve_output_path(
    input_path: Path,
    options: CompressionOptions,
    input_root: Path | None = None,
) -> Path:
    """Derive the destination path for input_path.

    The output lands beside the input, or under options.output_dir
    (mirroring the input's location relative to input_root) when an output
    root is configured. If the composed path equals the input path, the
    name is rebuilt with a forced "compressed_" prefix so the source is
    never overwritten. Pure: no filesystem access.
    """
    parent = _output_parent(input_path, options, input_root)

    stem = input_path.stem or FALLBACK_STEM
    prefix = f"{options.prefix}_" if options.prefix else ""

    output = parent / f"{prefix}{stem}.{options.extension}"
    if output == input_path:
        output = parent / f"{COLLISION_PREFIX}{prefix}{stem}.{options.extension}"
    return output


def _output_parent(
    input_path: Path,
    options: CompressionOptions,
    input_root: Path | None,
) -> Path:
    """Return the directory the output for input_path is written to."""
    if options.output_dir is None:
        return input_path.parent

    if input_root is not None:
        try:
            relative = input_path.parent.relative_to(input_root)
        except ValueError:
            return options.output_dir
        return options.output_dir / relative
    return options.output_dir
