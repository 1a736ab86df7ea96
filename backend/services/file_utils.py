"""Video encoding, size formatting and subtitle file saving helpers."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
import re
from pathlib import Path

from models import VideoSource
from services.errors import ReadError

logger = logging.getLogger(__name__)

SUBTITLE_EXTENSION = ".srt"
DEFAULT_OUTPUT_DIR = "outputs"
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")
_FINAL_EXTENSION = re.compile(r"\.[^/.]+$")


def strip_data_uri_prefix(value: str) -> str:
    """Drop a "data:<mime>;base64," header, leaving only the payload."""
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def _read_source(source: VideoSource) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if hasattr(source, "read"):
        if hasattr(source, "seek"):
            source.seek(0)
        return source.read()
    return Path(source).read_bytes()


def _encode_source(source: VideoSource) -> str:
    return base64.b64encode(_read_source(source)).decode("ascii")


async def encode_file(source: VideoSource) -> str:
    """
    Read the full video content and return it as a base64 string.

    Runs the read and the encode in a worker thread so large uploads do not
    block the event loop; the awaiting task may be cancelled like any other.
    A string starting with "data:" is treated as an already-encoded data URI.

    :raises ReadError: if the source cannot be read
    """
    if isinstance(source, str) and source.startswith("data:"):
        return strip_data_uri_prefix(source)
    try:
        return await asyncio.to_thread(_encode_source, source)
    except (OSError, ValueError) as exc:
        logger.error("[file_utils] Failed to read video source: %s", exc, exc_info=True)
        raise ReadError(f"Could not read video file: {exc}") from exc


def format_file_size(num_bytes: float) -> str:
    """
    Human-readable size in base-1024 units, e.g. 1536 -> "1.5 KB".

    Values past the GB range stay in GB. Negative input is not supported.
    """
    if num_bytes == 0:
        return "0 Bytes"
    if num_bytes < 0:
        raise ValueError("num_bytes must be non-negative")
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"


def srt_filename(name: str) -> str:
    """Replace the final extension of name with .srt, or append it."""
    return _FINAL_EXTENSION.sub("", name) + SUBTITLE_EXTENSION


def get_output_dir() -> str:
    """Output directory from env or default."""
    return os.environ.get("SUBTITLE_OUTPUT_DIR", "").strip() or DEFAULT_OUTPUT_DIR


def save_as_srt(content: str, suggested_name: str, *, output_dir: str | None = None) -> None:
    """
    Save subtitle text next to other outputs as <stem>.srt.

    Fire-and-forget: write failures are logged, never raised.

    :param content: SRT document text
    :param suggested_name: original video filename; only its basename is used
    :param output_dir: target directory; default from SUBTITLE_OUTPUT_DIR or "outputs"
    """
    target = Path(output_dir or get_output_dir()) / srt_filename(Path(suggested_name).name)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as exc:
        logger.error("[file_utils] Could not save subtitles to %s: %s", target, exc, exc_info=True)
        return
    logger.info("[file_utils] Saved %d characters of subtitles to %s", len(content), target)
