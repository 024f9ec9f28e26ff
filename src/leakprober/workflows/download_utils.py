"""Helpers for spooling response bodies, vetting them, and persisting hits."""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional

import aiohttp

from .probe_config import (
    HTML_PATTERN,
    SIZE_FLOOR,
    SNIFF_BYTES,
    SPOOL_CHUNK_BYTES,
    TEMP_PREFIX,
    TEMP_SUFFIX,
)


async def spool_response(resp: aiohttp.ClientResponse, spool_dir: Path) -> Path:
    """Stream the whole body of ``resp`` into a fresh temp file under ``spool_dir``.

    Disk writes run in the default executor so large bodies do not stall the
    event loop. The temp file is removed if streaming fails or is cancelled.
    """

    loop = asyncio.get_running_loop()
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=str(spool_dir))
    spool = Path(name)
    try:
        with os.fdopen(fd, "wb") as fh:
            async for chunk in resp.content.iter_chunked(SPOOL_CHUNK_BYTES):
                await loop.run_in_executor(None, fh.write, chunk)
    except BaseException:
        discard_spool(spool)
        raise
    return spool


def discard_spool(spool: Optional[Path]) -> None:
    if spool is None:
        return
    try:
        spool.unlink()
    except FileNotFoundError:
        pass


def spool_size(spool: Path) -> int:
    return spool.stat().st_size


def is_too_small(size: int, floor: int = SIZE_FLOOR) -> bool:
    return size <= floor


def looks_like_html(spool: Path, limit: int = SNIFF_BYTES) -> bool:
    """Return True when the first ``limit`` bytes carry an HTML/doctype tag."""

    with spool.open("rb") as fh:
        head = fh.read(limit)
    return HTML_PATTERN.search(head) is not None


def persist_spool(spool: Path, final_path: Path) -> Path:
    """Atomically move ``spool`` to ``final_path``, creating parents as needed."""

    final_path.parent.mkdir(parents=True, exist_ok=True)
    os.replace(spool, final_path)
    return final_path


__all__ = [
    "discard_spool",
    "is_too_small",
    "looks_like_html",
    "persist_spool",
    "spool_response",
    "spool_size",
]
