from __future__ import annotations

import asyncio
import json
import logging
import os
import random
import time
from collections import Counter
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, TextIO, Tuple
from urllib.parse import unquote, urljoin, urlsplit

import aiohttp

from ..core.keys import (
    K_COUNTS,
    K_ERROR,
    K_FINAL_URL,
    K_HITS,
    K_OUTCOME,
    K_PATH,
    K_SIZE,
    K_SKIPPED_TARGETS,
    K_STATUS,
    K_URL,
)
from .candidates import generate
from .download_utils import (
    discard_spool,
    is_too_small,
    looks_like_html,
    persist_spool,
    spool_response,
    spool_size,
)
from .probe_config import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DELAY,
    DEFAULT_HEADER_TIMEOUT,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_TIMEOUT,
    DEFAULT_WORKERS,
    ENV_CONNECT_TIMEOUT,
    ENV_DELAY,
    ENV_HEADER_TIMEOUT,
    ENV_INSECURE,
    ENV_OUTPUT_DIR,
    ENV_PROXY,
    ENV_SHUFFLE,
    ENV_TIMEOUT,
    ENV_USER_AGENT,
    ENV_WORKERS,
    HDR_LOCATION,
    HDR_USER_AGENT,
    REDIRECT_STATUSES,
)
from .probe_utils import (
    InvalidPath,
    InvalidTarget,
    Target,
    build_output_path,
    parse_target,
    resolve_candidate,
)
from .transport import build_headers, create_session, is_https_upgrade

logger = logging.getLogger(__name__)

SAVED = "saved"
SKIPPED_INVALID_STATUS = "skipped_invalid_status"
SKIPPED_LOOKS_LIKE_HTML = "skipped_looks_like_html"
SKIPPED_TOO_SMALL = "skipped_too_small"
FETCH_FAILED = "fetch_failed"
PERSIST_FAILED = "persist_failed"

OUTCOME_KINDS = (
    SAVED,
    SKIPPED_INVALID_STATUS,
    SKIPPED_LOOKS_LIKE_HTML,
    SKIPPED_TOO_SMALL,
    FETCH_FAILED,
    PERSIST_FAILED,
)

CandidateSource = Callable[[str], List[str]]
OutcomeHook = Callable[["ProbeOutcome"], None]


class ConfigurationError(RuntimeError):
    """Raised when a run cannot start (bad config, unusable transport)."""


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if not normalized:
        return default
    return normalized not in {"0", "false", "off", "no"}


def _env_number(name: str, default: float, cast: Callable[[str], Any]) -> Any:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name}={raw!r} is not a valid number") from exc


@dataclass(frozen=True)
class ProbeConfig:
    """Immutable configuration for one probing run."""

    output_root: Path = DEFAULT_OUTPUT_DIR
    workers: int = DEFAULT_WORKERS
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    header_timeout: float = DEFAULT_HEADER_TIMEOUT
    delay: float = DEFAULT_DELAY
    skip_verify: bool = False
    proxy_url: str = ""
    # None means a fresh random User-Agent per request
    user_agent: Optional[str] = None
    shuffle: bool = False

    @classmethod
    def from_env(cls) -> "ProbeConfig":
        output_dir = os.getenv(ENV_OUTPUT_DIR, "").strip()
        return cls(
            output_root=Path(output_dir) if output_dir else DEFAULT_OUTPUT_DIR,
            workers=_env_number(ENV_WORKERS, DEFAULT_WORKERS, int),
            timeout=_env_number(ENV_TIMEOUT, DEFAULT_TIMEOUT, float),
            connect_timeout=_env_number(ENV_CONNECT_TIMEOUT, DEFAULT_CONNECT_TIMEOUT, float),
            header_timeout=_env_number(ENV_HEADER_TIMEOUT, DEFAULT_HEADER_TIMEOUT, float),
            delay=_env_number(ENV_DELAY, DEFAULT_DELAY, float),
            skip_verify=_as_bool(os.getenv(ENV_INSECURE)),
            proxy_url=os.getenv(ENV_PROXY, "").strip(),
            user_agent=os.getenv(ENV_USER_AGENT, "").strip() or None,
            shuffle=_as_bool(os.getenv(ENV_SHUFFLE)),
        )

    def with_overrides(self, **overrides: Any) -> "ProbeConfig":
        """Return a copy with every non-None override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self

    def validate(self) -> "ProbeConfig":
        if self.workers < 1:
            raise ConfigurationError("workers must be at least 1")
        for name in ("timeout", "connect_timeout", "header_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.delay < 0:
            raise ConfigurationError("delay cannot be negative")
        if self.proxy_url:
            parsed = urlsplit(self.proxy_url)
            if parsed.scheme not in {"http", "https", "socks4", "socks5"} or not parsed.hostname:
                raise ConfigurationError(f"invalid proxy URL: {self.proxy_url}")
        return self


@dataclass(frozen=True)
class ProbeOutcome:
    """Terminal classification of one probe."""

    url: str
    kind: str
    status: Optional[int] = None
    final_url: Optional[str] = None
    path: Optional[str] = None
    size: Optional[int] = None
    error: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.kind == SAVED

    def describe(self) -> str:
        if self.kind == SAVED:
            return f"Saved {self.final_url or self.url} -> {self.path} ({self.size} bytes)"
        if self.kind == SKIPPED_INVALID_STATUS:
            return f"{self.status} - {self.url}"
        if self.kind == SKIPPED_TOO_SMALL:
            return f"File too small ({self.size} bytes): {self.url}"
        if self.kind == SKIPPED_LOOKS_LIKE_HTML:
            return f"Found HTML: {self.url}"
        if self.kind == PERSIST_FAILED:
            return f"Could not save {self.url}: {self.error}"
        return f"Error fetching {self.url}: {self.error}"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {K_URL: self.url, K_OUTCOME: self.kind}
        if self.status is not None:
            payload[K_STATUS] = self.status
        if self.final_url and self.final_url != self.url:
            payload[K_FINAL_URL] = self.final_url
        if self.path:
            payload[K_PATH] = self.path
        if self.size is not None:
            payload[K_SIZE] = self.size
        if self.error:
            payload[K_ERROR] = self.error
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass
class RunCounters:
    """Run-wide totals; every mutation goes through the one lock."""

    dispatched: int = 0
    fetched: int = 0
    saved: int = 0
    invalid_paths: int = 0
    outcomes: Counter = field(default_factory=Counter)
    hits: List[str] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    async def note_dispatch(self) -> None:
        async with self._lock:
            self.dispatched += 1

    async def note_invalid_path(self) -> None:
        async with self._lock:
            self.invalid_paths += 1

    async def record(self, outcome: ProbeOutcome, hit_sink: Optional[TextIO] = None) -> None:
        async with self._lock:
            self.outcomes[outcome.kind] += 1
            if outcome.status is not None:
                self.fetched += 1
            if outcome.saved:
                self.saved += 1
                hit = outcome.final_url or outcome.url
                self.hits.append(hit)
                if hit_sink is not None:
                    try:
                        hit_sink.write(hit + "\n")
                        hit_sink.flush()
                    except OSError:
                        # the hit stays in self.hits and the report
                        logger.warning("Could not write hit %s to the hits output", hit, exc_info=True)


class PacingGate:
    """Process-wide minimum spacing between probe starts."""

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.interval = max(0.0, interval)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._next_start = 0.0

    async def wait(self) -> float:
        """Block until the interval has elapsed since the previous start; return the start time."""

        async with self._lock:
            now = self._clock()
            while now < self._next_start:
                await asyncio.sleep(self._next_start - now)
                now = self._clock()
            self._next_start = now + self.interval
            return now


@dataclass
class RunContext:
    """Everything a probe task shares with the rest of the run."""

    config: ProbeConfig
    session: aiohttp.ClientSession
    counters: RunCounters
    hit_sink: Optional[TextIO] = None
    outcome_hook: Optional[OutcomeHook] = None


@dataclass
class ScanReport:
    targets: int
    skipped_targets: List[str]
    dispatched: int
    fetched: int
    saved: int
    invalid_paths: int
    outcomes: Dict[str, int]
    hits: List[str]
    runtime_seconds: float

    @property
    def nothing_found(self) -> bool:
        return self.saved == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            K_COUNTS: {
                "targets": self.targets,
                "skipped_targets": len(self.skipped_targets),
                "dispatched": self.dispatched,
                "fetched": self.fetched,
                "saved": self.saved,
                "invalid_paths": self.invalid_paths,
                **{kind: int(self.outcomes.get(kind, 0)) for kind in OUTCOME_KINDS},
            },
            K_HITS: list(self.hits),
            K_SKIPPED_TARGETS: list(self.skipped_targets),
            "runtime_seconds": round(self.runtime_seconds, 3),
        }


def _describe_error(exc: BaseException) -> str:
    detail = str(exc).strip()
    name = type(exc).__name__
    return f"{name}: {detail}" if detail else name


_OUTCOME_LOG_LEVELS = {
    SAVED: logging.INFO,
    SKIPPED_INVALID_STATUS: logging.INFO,
    SKIPPED_LOOKS_LIKE_HTML: logging.INFO,
    SKIPPED_TOO_SMALL: logging.INFO,
    FETCH_FAILED: logging.WARNING,
    PERSIST_FAILED: logging.WARNING,
}


class URLProber:
    """Async prober: bounded, paced fan-out of fetch-validate-persist probes."""

    def __init__(
        self,
        config: ProbeConfig,
        candidates: Optional[CandidateSource] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self._candidates = candidates or generate
        self._rng = rng or random.Random()

    def _candidates_for(self, target: Target) -> List[str]:
        items = list(self._candidates(target.hostname))
        if self.config.shuffle:
            self._rng.shuffle(items)
        return items

    async def probe_many(
        self,
        targets: Iterable[str],
        *,
        hit_sink: Optional[TextIO] = None,
        outcome_hook: Optional[OutcomeHook] = None,
    ) -> ScanReport:
        """Probe every candidate of every target and wait for all probes to finish."""

        start_time = time.perf_counter()
        counters = RunCounters()
        slots = asyncio.Semaphore(self.config.workers)
        gate = PacingGate(self.config.delay)
        pending: Set[asyncio.Task] = set()
        skipped_targets: List[str] = []
        total_targets = 0

        async with create_session(self.config) as session:
            ctx = RunContext(
                config=self.config,
                session=session,
                counters=counters,
                hit_sink=hit_sink,
                outcome_hook=outcome_hook,
            )
            for raw in targets:
                total_targets += 1
                try:
                    target = parse_target(raw)
                except InvalidTarget as exc:
                    logger.error("Skipping target: %s", exc)
                    skipped_targets.append(raw)
                    continue
                for candidate in self._candidates_for(target):
                    try:
                        url = resolve_candidate(target.url, candidate)
                    except InvalidPath as exc:
                        logger.error("Skipping candidate for %s: %s", target.url, exc)
                        await counters.note_invalid_path()
                        continue
                    await slots.acquire()
                    try:
                        await gate.wait()
                    except BaseException:
                        slots.release()
                        raise
                    await counters.note_dispatch()
                    task = asyncio.create_task(self._run_slot(ctx, url, slots))
                    pending.add(task)
                    task.add_done_callback(pending.discard)
            # Join barrier: no totals are read while a probe is still running.
            if pending:
                results = await asyncio.gather(*list(pending), return_exceptions=True)
                for result in results:
                    if isinstance(result, Exception):
                        logger.error("Probe task failed", exc_info=result)

        return ScanReport(
            targets=total_targets,
            skipped_targets=skipped_targets,
            dispatched=counters.dispatched,
            fetched=counters.fetched,
            saved=counters.saved,
            invalid_paths=counters.invalid_paths,
            outcomes=dict(counters.outcomes),
            hits=list(counters.hits),
            runtime_seconds=max(0.0, time.perf_counter() - start_time),
        )

    async def _run_slot(self, ctx: RunContext, url: str, slots: asyncio.Semaphore) -> ProbeOutcome:
        try:
            try:
                outcome = await self._probe_url(ctx, url)
            except Exception as exc:
                logger.exception("Unexpected error while probing %s", url)
                outcome = ProbeOutcome(url=url, kind=FETCH_FAILED, error=_describe_error(exc))
            try:
                await ctx.counters.record(outcome, ctx.hit_sink)
            except Exception:
                logger.exception("Could not record outcome for %s", url)
            self._report(ctx, outcome)
            return outcome
        finally:
            slots.release()

    def _report(self, ctx: RunContext, outcome: ProbeOutcome) -> None:
        logger.log(_OUTCOME_LOG_LEVELS.get(outcome.kind, logging.INFO), outcome.describe())
        if ctx.outcome_hook is None:
            return
        try:
            ctx.outcome_hook(outcome)
        except Exception:
            logger.warning("Outcome hook failed for %s", outcome.url, exc_info=True)

    async def _probe_url(self, ctx: RunContext, url: str) -> ProbeOutcome:
        """Fetch one URL, vet the body, and persist it when it looks genuine."""

        try:
            status, final_url, spool = await asyncio.wait_for(self._fetch(ctx, url), timeout=ctx.config.timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            return ProbeOutcome(url=url, kind=FETCH_FAILED, error=_describe_error(exc))
        except OSError as exc:
            # Spool file could not be created or written
            return ProbeOutcome(url=url, kind=PERSIST_FAILED, error=_describe_error(exc))

        if spool is None:
            return ProbeOutcome(url=url, kind=SKIPPED_INVALID_STATUS, status=status, final_url=final_url)

        try:
            size = spool_size(spool)
            if is_too_small(size):
                return ProbeOutcome(url=url, kind=SKIPPED_TOO_SMALL, status=status, final_url=final_url, size=size)
            if looks_like_html(spool):
                return ProbeOutcome(url=url, kind=SKIPPED_LOOKS_LIKE_HTML, status=status, final_url=final_url, size=size)
            final_path = persist_spool(spool, self._output_path(ctx.config, final_url))
            spool = None
        except OSError as exc:
            return ProbeOutcome(url=url, kind=PERSIST_FAILED, status=status, final_url=final_url, error=_describe_error(exc))
        finally:
            discard_spool(spool)

        return ProbeOutcome(
            url=url,
            kind=SAVED,
            status=status,
            final_url=final_url,
            path=str(final_path),
            size=size,
        )

    async def _fetch(self, ctx: RunContext, url: str) -> Tuple[int, str, Optional[Path]]:
        """GET ``url`` (plus at most one http->https upgrade hop).

        Returns ``(status, final_url, spool)``; ``spool`` is None unless the
        final response was a 200.
        """

        headers = build_headers(ctx.config.user_agent, self._rng)
        logger.debug("%s => %s", url, headers[HDR_USER_AGENT])
        request_kwargs: Dict[str, Any] = {"headers": headers, "allow_redirects": False}
        if ctx.config.proxy_url:
            request_kwargs["proxy"] = ctx.config.proxy_url
        spool: Optional[Path] = None
        try:
            async with ctx.session.get(url, **request_kwargs) as resp:
                upgrade = self._upgrade_target(url, resp)
                if upgrade is None:
                    spool = await self._maybe_spool(ctx, resp)
                    return resp.status, str(resp.url), spool
            logger.debug("Following https upgrade %s -> %s", url, upgrade)
            async with ctx.session.get(upgrade, **request_kwargs) as resp:
                spool = await self._maybe_spool(ctx, resp)
                return resp.status, str(resp.url), spool
        except BaseException:
            discard_spool(spool)
            raise

    @staticmethod
    def _upgrade_target(url: str, resp: aiohttp.ClientResponse) -> Optional[str]:
        if resp.status not in REDIRECT_STATUSES:
            return None
        location = resp.headers.get(HDR_LOCATION, "")
        if not location:
            return None
        target = urljoin(url, location)
        return target if is_https_upgrade(url, target) else None

    @staticmethod
    async def _maybe_spool(ctx: RunContext, resp: aiohttp.ClientResponse) -> Optional[Path]:
        if resp.status != 200:
            return None
        return await spool_response(resp, ctx.config.output_root)

    @staticmethod
    def _output_path(config: ProbeConfig, final_url: str) -> Path:
        parts = urlsplit(final_url)
        return build_output_path(config.output_root, parts.hostname or "", unquote(parts.path))
