"""Shared helpers: target parsing, candidate resolution, output path layout."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin, urlsplit

from .probe_config import INDEX_FILENAME, INVALID_PATH_CHARS, PATH_PLACEHOLDER

_FORBIDDEN_CANDIDATE_CHARS = re.compile(r"[\x00-\x20\x7f]")


class InvalidTarget(ValueError):
    """Raised when an input line is not a usable http(s) base URL."""


class InvalidPath(ValueError):
    """Raised when a candidate cannot be parsed as a relative reference."""


@dataclass(frozen=True)
class Target:
    url: str
    scheme: str
    hostname: str
    port: Optional[int] = None


def idna_normalize(host: str) -> str:
    """Return a lowercase, IDNA-normalized host name."""

    h = (host or "").strip().rstrip(".").lower()
    if not h:
        return ""
    try:
        h = h.encode("idna").decode("ascii")
    except UnicodeError:
        pass
    return h


def parse_target(raw: str) -> Target:
    text = (raw or "").strip()
    try:
        parts = urlsplit(text)
        port = parts.port
    except ValueError as exc:
        raise InvalidTarget(f"cannot parse target {text!r}: {exc}") from exc
    scheme = parts.scheme.lower()
    if scheme not in {"http", "https"}:
        raise InvalidTarget(f"target {text!r} must use http or https")
    if not parts.hostname:
        raise InvalidTarget(f"target {text!r} has no host")
    return Target(url=text, scheme=scheme, hostname=parts.hostname, port=port)


def resolve_candidate(base: str, candidate: str) -> str:
    """Join ``candidate`` onto the root of ``base``.

    Leading slashes are collapsed so ``/.env`` and ``.env`` resolve to the
    same URL, and the candidate never lands under an existing path component
    of the base. Resolution follows RFC 3986 (dot segments removed).
    """

    raw = candidate or ""
    if _FORBIDDEN_CANDIDATE_CHARS.search(raw):
        raise InvalidPath(f"candidate {raw!r} contains whitespace or control characters")
    relative = raw.lstrip("/")
    if not relative:
        raise InvalidPath("empty candidate path")
    try:
        parts = urlsplit(relative)
    except ValueError as exc:
        raise InvalidPath(f"cannot parse candidate {raw!r}: {exc}") from exc
    if parts.scheme or parts.netloc:
        raise InvalidPath(f"candidate {raw!r} is not a relative reference")
    return urljoin(base, "/" + relative)


def sanitize_segment(name: str) -> str:
    cleaned = INVALID_PATH_CHARS.sub(PATH_PLACEHOLDER, name or "")
    if cleaned in {"", ".", ".."}:
        return PATH_PLACEHOLDER
    return cleaned


def build_output_path(output_root: Path, host: str, decoded_path: str) -> Path:
    """Map a host and a percent-decoded URL path to ``{root}/{host}/{path}``.

    Every component is sanitized; empty and ``.`` segments are dropped and a
    bare ``/`` maps to ``index``.
    """

    segments = [sanitize_segment(seg) for seg in (decoded_path or "").split("/") if seg not in {"", "."}]
    if not segments:
        segments = [INDEX_FILENAME]
    return Path(output_root, sanitize_segment(host), *segments)


def sanity_check() -> None:
    assert idna_normalize("ExAmple.COM.") == "example.com"
    assert resolve_candidate("https://example.com/app/", "/.env") == resolve_candidate(
        "https://example.com/app/", ".env"
    )
    assert sanitize_segment("a:b") == "a_b"


sanity_check()

__all__ = [
    "InvalidPath",
    "InvalidTarget",
    "Target",
    "build_output_path",
    "idna_normalize",
    "parse_target",
    "resolve_candidate",
    "sanitize_segment",
    "sanity_check",
]
