import random
from collections import Counter

from leakprober.workflows import catalog
from leakprober.workflows.candidates import (
    extend,
    generate,
    generate_combinations,
    hostname_names,
)


def test_generate_combinations_leftmost_varies_slowest():
    combos = generate_combinations(("a", "b"), (".zip", ".sql"))
    assert combos == ["a.zip", "a.sql", "b.zip", "b.sql"]


def test_generate_combinations_three_groups_and_empty():
    combos = generate_combinations(("", "docker/"), ("compose",), (".yml", ".yaml"))
    assert combos == ["compose.yml", "compose.yaml", "docker/compose.yml", "docker/compose.yaml"]
    assert generate_combinations() == []


def test_extend_appends_every_group_in_order():
    items = ["x"]
    result = extend(items, ("a", "b"), ["c"])
    assert result is items
    assert items == ["x", "a", "b", "c"]


def test_hostname_names_strip_www():
    assert hostname_names("WWW.Example.co.uk") == [
        "www.example.co.uk",
        "example.co.uk",
        "example",
        "example_co_uk",
    ]


def test_generate_is_deterministic_and_well_formed():
    first = generate("www.example.com")
    second = generate("www.example.com")
    assert first == second
    assert first
    for candidate in first:
        assert candidate
        assert "\n" not in candidate
        assert not candidate.startswith("/")


def test_generate_covers_every_group():
    candidates = set(generate("www.example.com"))
    expected = {
        ".bash_history",
        ".git/config",
        ".aws/credentials",
        ".vscode/sftp.json",
        "error.log",
        ".env",
        ".env.prod",
        "wp-config.php.bak",
        "config.php~",
        "backup.zip",
        "www.example.com.tar.gz",
        "example.com.zip",
        "example.7z",
        "example_com.rar",
        "db.sql",
        "example.sql.gz",
        "docker-compose.yml",
        "docker/docker-compose.prod.yml",
        "deploy/compose.dev.yaml",
        "Dockerfile",
        "deploy/Dockerfile.dev",
        "Jenkinsfile",
    }
    assert expected <= candidates


def test_generate_keeps_duplicates():
    candidates = generate("backup.example")
    counts = Counter(candidates)
    # "backup" is both a catalog archive name and the host's first label
    assert counts["backup.zip"] == 2
    assert counts["backup.example.zip"] == 2


def test_generate_shuffle_only_changes_order():
    plain = generate("example.com")
    shuffled = generate("example.com", shuffle=True, rng=random.Random(7))
    assert Counter(plain) == Counter(shuffled)
    assert plain != shuffled


def test_generate_with_empty_hostname_still_yields_catalog():
    candidates = generate("")
    assert ".env" in candidates
    assert ".zip" in candidates
    expected_size = len(catalog.SHELL_DOTFILES) + len(catalog.VCS_FILES)
    assert len(candidates) > expected_size
