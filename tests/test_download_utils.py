import asyncio
from pathlib import Path

import pytest

from leakprober.workflows.download_utils import (
    discard_spool,
    is_too_small,
    looks_like_html,
    persist_spool,
    spool_response,
    spool_size,
)


class _StreamedBody:
    def __init__(self, chunks, error=None):
        self._chunks = chunks
        self._error = error

    async def iter_chunked(self, size):
        for chunk in self._chunks:
            await asyncio.sleep(0)
            yield chunk
        if self._error is not None:
            raise self._error


class _Response:
    def __init__(self, chunks, error=None):
        self.content = _StreamedBody(chunks, error)


def _spool(tmp_path: Path, body: bytes) -> Path:
    path = tmp_path / ".leakprober-test.part"
    path.write_bytes(body)
    return path


def test_size_floor_is_inclusive():
    assert is_too_small(0)
    assert is_too_small(100)
    assert not is_too_small(101)


@pytest.mark.parametrize(
    "body",
    [
        b"<!DOCTYPE html><html><body>not found</body></html>",
        b"<!doctype HTML>\n<title>x</title>",
        b"<HTML>",
        b"\n\n   <script>window.location='/'</script>",
        b'<meta http-equiv="refresh" content="0">',
        b"garbage " * 100 + b"<body>late tag</body>",
    ],
)
def test_looks_like_html_detects_markup(tmp_path: Path, body: bytes):
    assert looks_like_html(_spool(tmp_path, body))


@pytest.mark.parametrize(
    "body",
    [
        b"DB_PASSWORD=hunter2\n" * 20,
        b"PK\x03\x04" + b"\x00" * 200,
        b"-- MySQL dump 10.13\nCREATE TABLE `users` (id int);\n",
        b"<?xml version='1.0'?><project/>",
    ],
)
def test_looks_like_html_ignores_plain_files(tmp_path: Path, body: bytes):
    assert not looks_like_html(_spool(tmp_path, body))


def test_looks_like_html_only_reads_prefix(tmp_path: Path):
    body = b"A" * 5000 + b"<html>"
    assert not looks_like_html(_spool(tmp_path, body))


def test_persist_spool_moves_bytes_and_creates_parents(tmp_path: Path):
    body = bytes(range(256)) * 4
    spool = _spool(tmp_path, body)
    final = tmp_path / "example.com" / ".git" / "config"

    assert spool_size(spool) == len(body)
    assert persist_spool(spool, final) == final
    assert final.read_bytes() == body
    assert not spool.exists()


def test_persist_spool_fails_when_parent_is_a_file(tmp_path: Path):
    (tmp_path / "example.com").write_text("occupied", encoding="utf-8")
    spool = _spool(tmp_path, b"x" * 200)
    with pytest.raises(OSError):
        persist_spool(spool, tmp_path / "example.com" / "backup.sql")
    assert spool.exists()


def test_discard_spool_tolerates_missing_and_none(tmp_path: Path):
    spool = _spool(tmp_path, b"x")
    discard_spool(spool)
    assert not spool.exists()
    discard_spool(spool)
    discard_spool(None)


def test_spool_response_streams_every_chunk(tmp_path: Path):
    chunks = [b"A" * 65536, b"B" * 65536, b"tail\n"]

    spool = asyncio.run(spool_response(_Response(chunks), tmp_path))

    assert spool.parent == tmp_path
    assert spool.name.startswith(".leakprober-")
    assert spool.name.endswith(".part")
    assert spool.read_bytes() == b"".join(chunks)


def test_spool_response_removes_temp_file_on_stream_error(tmp_path: Path):
    response = _Response([b"x" * 1024], error=ConnectionResetError("peer went away"))

    with pytest.raises(ConnectionResetError):
        asyncio.run(spool_response(response, tmp_path))

    assert list(tmp_path.iterdir()) == []
