from pathlib import Path

import pytest

from leakprober.workflows.probe_utils import (
    InvalidPath,
    InvalidTarget,
    build_output_path,
    idna_normalize,
    parse_target,
    resolve_candidate,
    sanitize_segment,
)


def test_parse_target_accepts_http_and_https():
    target = parse_target("  https://Example.com:8443/app/  ")
    assert target.url == "https://Example.com:8443/app/"
    assert target.scheme == "https"
    assert target.hostname == "example.com"
    assert target.port == 8443

    plain = parse_target("http://127.0.0.1")
    assert plain.scheme == "http"
    assert plain.port is None


@pytest.mark.parametrize(
    "raw",
    ["example.com", "ftp://example.com/", "https://", "", "http://example.com:notaport/"],
)
def test_parse_target_rejects_unusable_input(raw):
    with pytest.raises(InvalidTarget):
        parse_target(raw)


def test_idna_normalize():
    assert idna_normalize("ExAmple.COM.") == "example.com"
    assert idna_normalize("bücher.de") == "xn--bcher-kva.de"
    assert idna_normalize("") == ""


@pytest.mark.parametrize("base", ["https://example.com", "https://example.com/app/index.php?x=1#top"])
def test_resolve_candidate_leading_slash_is_idempotent(base):
    assert resolve_candidate(base, "/.env") == resolve_candidate(base, ".env")
    assert resolve_candidate(base, "///.env") == "https://example.com/.env"


def test_resolve_candidate_keeps_final_segment_and_port():
    url = resolve_candidate("http://127.0.0.1:8080/some/dir/", "docker/docker-compose.prod.yml")
    assert url == "http://127.0.0.1:8080/docker/docker-compose.prod.yml"
    assert url.endswith("docker-compose.prod.yml")


def test_resolve_candidate_removes_dot_segments():
    assert resolve_candidate("https://example.com/a/", "../../etc/passwd") == "https://example.com/etc/passwd"


def test_resolve_candidate_protocol_relative_stays_on_host():
    assert resolve_candidate("https://example.com/", "//evil.test/x") == "https://example.com/evil.test/x"


@pytest.mark.parametrize("candidate", ["", "/", "a b", "line\nbreak", "http://evil.test/x", "mailto:root"])
def test_resolve_candidate_rejects_bad_candidates(candidate):
    with pytest.raises(InvalidPath):
        resolve_candidate("https://example.com/", candidate)


def test_sanitize_segment():
    assert sanitize_segment("fi:le*?.txt") == "fi_le_.txt"
    assert sanitize_segment("..") == "_"
    assert sanitize_segment("") == "_"
    assert sanitize_segment("backup.sql") == "backup.sql"


def test_build_output_path_layout(tmp_path: Path):
    assert build_output_path(tmp_path, "example.com", "/backup.sql") == tmp_path / "example.com" / "backup.sql"
    assert build_output_path(tmp_path, "example.com", "/.git/config") == tmp_path / "example.com" / ".git" / "config"
    assert build_output_path(tmp_path, "example.com", "/") == tmp_path / "example.com" / "index"
    assert build_output_path(tmp_path, "example.com", "//a/./b") == tmp_path / "example.com" / "a" / "b"


def test_build_output_path_never_escapes_root(tmp_path: Path):
    path = build_output_path(tmp_path, "example.com", "/../../etc/pa:sswd")
    assert path == tmp_path / "example.com" / "_" / "_" / "etc" / "pa_sswd"
    assert tmp_path in path.parents
