"""Candidate path generation for one target hostname."""

from __future__ import annotations

import random
from typing import Iterable, List, Optional, Sequence

from . import catalog
from .probe_utils import idna_normalize


def extend(items: List[str], *others: Iterable[str]) -> List[str]:
    for other in others:
        items.extend(other)
    return items


def generate_combinations(*groups: Sequence[str]) -> List[str]:
    """Concatenate one item from each group, left-most group varying slowest.

    ``generate_combinations(("a", "b"), (".zip", ".sql"))`` yields
    ``["a.zip", "a.sql", "b.zip", "b.sql"]``. No groups yields an empty list.
    """

    if not groups:
        return []
    combos: List[str] = [""]
    for group in groups:
        combos = [prefix + item for prefix in combos for item in group]
    return combos


def hostname_names(hostname: str) -> List[str]:
    """Archive/dump basenames derived from the target's own hostname.

    An empty hostname degrades to empty names; callers still get a usable
    (if odd) candidate such as ``.zip``.
    """

    host = idna_normalize(hostname)
    bare = host[4:] if host.startswith("www.") else host
    first_label = bare.split(".", 1)[0]
    return [host, bare, first_label, bare.replace(".", "_")]


def generate(
    hostname: str,
    *,
    shuffle: bool = False,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Return the relative candidate paths to probe on ``hostname``.

    The list is deterministic for a given hostname; ``shuffle`` only changes
    the order. Entries are not deduplicated.
    """

    host_names = hostname_names(hostname)
    archive_names = list(catalog.ARCHIVE_NAMES) + host_names
    dump_names = list(catalog.DUMP_NAMES) + host_names

    candidates: List[str] = []
    extend(
        candidates,
        catalog.SHELL_DOTFILES,
        catalog.VCS_FILES,
        catalog.CREDENTIAL_FILES,
        catalog.IDE_FILES,
        catalog.LOG_FILES,
        generate_combinations((catalog.ENV_FILE,), catalog.ENV_SUFFIXES),
        generate_combinations(catalog.CONFIG_FILES, catalog.BACKUP_SUFFIXES),
        generate_combinations(archive_names, catalog.ARCHIVE_EXTENSIONS),
        generate_combinations(dump_names, catalog.DUMP_EXTENSIONS),
        generate_combinations(
            catalog.DEPLOY_PREFIXES,
            catalog.COMPOSE_NAMES,
            catalog.STAGE_SUFFIXES,
            catalog.YAML_EXTENSIONS,
        ),
        generate_combinations(
            catalog.DEPLOY_PREFIXES,
            catalog.DOCKERFILE_NAMES,
            catalog.STAGE_SUFFIXES,
        ),
        catalog.DEPLOY_LITERALS,
    )
    if shuffle:
        (rng or random.Random()).shuffle(candidates)
    return candidates


__all__ = [
    "extend",
    "generate",
    "generate_combinations",
    "hostname_names",
]
