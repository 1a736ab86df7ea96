"""Tests for encoding, size formatting and subtitle saving helpers."""

import base64
import io
import logging
from pathlib import Path

import pytest

from services.errors import ReadError
from services.file_utils import (
    DEFAULT_OUTPUT_DIR,
    encode_file,
    format_file_size,
    get_output_dir,
    save_as_srt,
    srt_filename,
    strip_data_uri_prefix,
)


@pytest.mark.parametrize(
    ("num_bytes", "expected"),
    [
        (0, "0 Bytes"),
        (1, "1 Bytes"),
        (1023, "1023 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (62 * 1024 * 1024, "62 MB"),
        (25 * 1024 * 1024 + 512 * 1024, "25.5 MB"),
        (3 * 1024**3, "3 GB"),
        (2048 * 1024**3, "2048 GB"),
    ],
)
def test_format_file_size(num_bytes: int, expected: str) -> None:
    assert format_file_size(num_bytes) == expected


@pytest.mark.parametrize("num_bytes", [1, 7, 999, 4096, 10**6, 10**9, 10**13])
def test_format_file_size_always_ends_in_a_unit(num_bytes: int) -> None:
    text = format_file_size(num_bytes)
    assert text
    assert text.rsplit(" ", 1)[1] in {"Bytes", "KB", "MB", "GB"}


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("movie.mp4", "movie.srt"),
        ("clip", "clip.srt"),
        ("my.holiday.video.mov", "my.holiday.video.srt"),
        ("dir.v2/raw", "dir.v2/raw.srt"),
    ],
)
def test_srt_filename(name: str, expected: str) -> None:
    assert srt_filename(name) == expected


def test_strip_data_uri_prefix() -> None:
    assert strip_data_uri_prefix("data:video/mp4;base64,QUJD") == "QUJD"
    assert strip_data_uri_prefix("QUJD") == "QUJD"


@pytest.mark.anyio
async def test_encode_file_from_bytes() -> None:
    assert await encode_file(b"abc") == base64.b64encode(b"abc").decode("ascii")


@pytest.mark.anyio
async def test_encode_file_from_path(tmp_path: Path) -> None:
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"\x00\x01fake-video")
    encoded = await encode_file(video)
    assert base64.b64decode(encoded) == b"\x00\x01fake-video"


@pytest.mark.anyio
async def test_encode_file_from_stream_rewinds() -> None:
    stream = io.BytesIO(b"stream-bytes")
    stream.read()
    encoded = await encode_file(stream)
    assert base64.b64decode(encoded) == b"stream-bytes"


@pytest.mark.anyio
async def test_encode_file_strips_data_uri_header() -> None:
    assert await encode_file("data:video/webm;base64,AAAA") == "AAAA"


@pytest.mark.anyio
async def test_encode_file_missing_path_raises_read_error(tmp_path: Path) -> None:
    with pytest.raises(ReadError):
        await encode_file(tmp_path / "missing.mp4")


@pytest.mark.anyio
async def test_encode_file_closed_stream_raises_read_error() -> None:
    stream = io.BytesIO(b"gone")
    stream.close()
    with pytest.raises(ReadError):
        await encode_file(stream)


def test_save_as_srt_writes_stem_with_srt_extension(tmp_path: Path) -> None:
    save_as_srt("abc", "movie.mp4", output_dir=str(tmp_path))
    assert (tmp_path / "movie.srt").read_text(encoding="utf-8") == "abc"

    save_as_srt("abc", "clip", output_dir=str(tmp_path))
    assert (tmp_path / "clip.srt").read_text(encoding="utf-8") == "abc"


def test_save_as_srt_uses_basename_only(tmp_path: Path) -> None:
    save_as_srt("1\n", "../../etc/movie.mp4", output_dir=str(tmp_path))
    assert (tmp_path / "movie.srt").exists()


def test_save_as_srt_logs_instead_of_raising(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    with caplog.at_level(logging.ERROR):
        result = save_as_srt("abc", "movie.mp4", output_dir=str(blocker))
    assert result is None
    assert "Could not save subtitles" in caplog.text


def test_get_output_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SUBTITLE_OUTPUT_DIR", raising=False)
    assert get_output_dir() == DEFAULT_OUTPUT_DIR
    monkeypatch.setenv("SUBTITLE_OUTPUT_DIR", "  /tmp/subs  ")
    assert get_output_dir() == "/tmp/subs"
