import asyncio
import random
import re
from pathlib import Path

import pytest

from leakprober.workflows.probe_config import (
    DEFAULT_ACCEPT,
    DEFAULT_ACCEPT_LANGUAGE,
    UA_VERSION_RANGES,
)
from leakprober.workflows.transport import (
    build_headers,
    create_session,
    is_https_upgrade,
    random_user_agent,
)
from leakprober.workflows.web_probe import ProbeConfig

_UA_RE = re.compile(r"(Firefox|Chrome)/(\d+)\.0")


def test_random_user_agent_stays_within_version_ranges():
    rng = random.Random(1234)
    families = set()
    for _ in range(200):
        agent = random_user_agent(rng)
        assert agent.startswith("Mozilla/5.0 (")
        match = _UA_RE.search(agent)
        assert match is not None
        major = int(match.group(2))
        if match.group(1) == "Firefox":
            family = "firefox"
        elif " Edg/" in agent:
            family = "edge"
        else:
            family = "chrome"
        families.add(family)
        low, high = UA_VERSION_RANGES[family]
        assert low <= major <= high
    assert families == set(UA_VERSION_RANGES)


def test_random_user_agent_is_reproducible_with_seed():
    assert random_user_agent(random.Random(5)) == random_user_agent(random.Random(5))


def test_build_headers_defaults_and_fixed_agent():
    headers = build_headers("probe/1.0")
    assert headers == {
        "Accept": DEFAULT_ACCEPT,
        "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
        "User-Agent": "probe/1.0",
    }
    assert build_headers(rng=random.Random(3))["User-Agent"].startswith("Mozilla/5.0")


@pytest.mark.parametrize(
    "url, location, expected",
    [
        ("http://example.com/.env", "https://example.com/.env", True),
        ("http://example.com/.env", "https://example.com:443/.env", True),
        ("http://example.com/a?x=1", "https://example.com/a?x=1", True),
        ("http://example.com/.env", "https://www.example.com/.env", False),
        ("http://example.com/.env", "https://example.com/login", False),
        ("http://example.com/.env", "/login", False),
        ("http://example.com/a?x=1", "https://example.com/a?x=2", False),
        ("https://example.com/.env", "https://example.com/.env", False),
        ("http://example.com/.env", "", False),
    ],
)
def test_is_https_upgrade(url, location, expected):
    assert is_https_upgrade(url, location) is expected


def test_create_session_maps_timeouts_and_limits(tmp_path: Path):
    config = ProbeConfig(
        output_root=tmp_path,
        workers=7,
        connect_timeout=3.0,
        header_timeout=4.0,
        proxy_url="http://proxy.local:3128",
    )

    async def _inspect():
        session = create_session(config)
        try:
            return session.timeout, session.connector.limit, session.trust_env
        finally:
            await session.close()

    timeout, limit, trust_env = asyncio.run(_inspect())
    assert timeout.total is None
    assert timeout.sock_connect == 3.0
    assert timeout.sock_read == 4.0
    assert limit == 7
    assert trust_env is False
