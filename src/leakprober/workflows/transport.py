"""Shared HTTP transport: session construction, request headers, redirect policy."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Dict, Optional
from urllib.parse import urljoin, urlsplit

import aiohttp

from .probe_config import (
    DEFAULT_ACCEPT,
    DEFAULT_ACCEPT_LANGUAGE,
    HDR_ACCEPT,
    HDR_ACCEPT_LANGUAGE,
    HDR_USER_AGENT,
    UA_PLATFORMS,
    UA_VERSION_RANGES,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .web_probe import ProbeConfig


def random_user_agent(rng: Optional[random.Random] = None) -> str:
    """Return a plausible desktop browser User-Agent.

    Platform is a weighted pick from a static table; browser family and major
    version are uniform within the family's range.
    """

    chooser = rng or random
    platforms = [platform for platform, _ in UA_PLATFORMS]
    weights = [weight for _, weight in UA_PLATFORMS]
    platform = chooser.choices(platforms, weights=weights, k=1)[0]
    family = chooser.choice(sorted(UA_VERSION_RANGES))
    low, high = UA_VERSION_RANGES[family]
    major = chooser.randint(low, high)
    if family == "firefox":
        return f"Mozilla/5.0 ({platform}; rv:{major}.0) Gecko/20100101 Firefox/{major}.0"
    agent = (
        f"Mozilla/5.0 ({platform}) AppleWebKit/537.36 (KHTML, like Gecko) "
        f"Chrome/{major}.0.0.0 Safari/537.36"
    )
    if family == "edge":
        agent += f" Edg/{major}.0.0.0"
    return agent


def build_headers(user_agent: Optional[str] = None, rng: Optional[random.Random] = None) -> Dict[str, str]:
    return {
        HDR_ACCEPT: DEFAULT_ACCEPT,
        HDR_ACCEPT_LANGUAGE: DEFAULT_ACCEPT_LANGUAGE,
        HDR_USER_AGENT: user_agent or random_user_agent(rng),
    }


def is_https_upgrade(url: str, location: str) -> bool:
    """Return True when ``location`` only moves ``url`` from http to https."""

    if not location:
        return False
    src = urlsplit(url)
    dst = urlsplit(urljoin(url, location))
    return (
        src.scheme == "http"
        and dst.scheme == "https"
        and bool(src.hostname)
        and src.hostname == dst.hostname
        and (src.path or "/") == (dst.path or "/")
        and src.query == dst.query
    )


def create_session(config: "ProbeConfig") -> aiohttp.ClientSession:
    """Build the one session shared by every probe in a run.

    ``sock_read`` bounds the wait for the first response byte (and every
    later read); the total deadline is enforced per probe by the caller.
    """

    timeout = aiohttp.ClientTimeout(
        total=None,
        sock_connect=config.connect_timeout,
        sock_read=config.header_timeout,
    )
    connector_kwargs: Dict[str, object] = {"limit": config.workers}
    if config.skip_verify:
        connector_kwargs["ssl"] = False
    connector = aiohttp.TCPConnector(**connector_kwargs)
    return aiohttp.ClientSession(
        connector=connector,
        timeout=timeout,
        trust_env=not config.proxy_url,
    )


__all__ = [
    "build_headers",
    "create_session",
    "is_https_upgrade",
    "random_user_agent",
]
