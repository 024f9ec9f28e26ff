from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import ExitStack
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO, Tuple

from .workflows.web_probe import (
    ConfigurationError,
    OutcomeHook,
    ProbeConfig,
    ProbeOutcome,
    ScanReport,
    URLProber,
)

logger = logging.getLogger(__name__)


def parse_target_lines(lines: Iterable[str]) -> List[str]:
    targets: List[str] = []
    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith("#"):
            continue
        targets.append(line)
    return targets


def load_targets(path_or_dash: str, *, stdin: Optional[TextIO] = None) -> List[str]:
    if path_or_dash == "-":
        stream = stdin or sys.stdin
        return parse_target_lines(stream.read().splitlines())
    path = Path(path_or_dash)
    if not path.exists():
        raise FileNotFoundError(f"Target list not found: {path}")
    return parse_target_lines(path.read_text(encoding="utf-8").splitlines())


def build_config(**overrides: Any) -> ProbeConfig:
    """Environment defaults, then explicit overrides, validated once."""

    return ProbeConfig.from_env().with_overrides(**overrides).validate()


def prepare_output_root(config: ProbeConfig) -> None:
    try:
        config.output_root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Unable to create output dir {config.output_root}: {exc}") from exc


def _timestamp(moment: datetime) -> str:
    return moment.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def render_summary(report: ScanReport) -> str:
    if report.nothing_found:
        return f"Scanning finished: nothing found ({report.dispatched} probes across {report.targets} targets)."
    return (
        f"Scanning finished: {report.saved} file(s) saved "
        f"({report.dispatched} probes across {report.targets} targets)."
    )


def run_scan(
    targets: Sequence[str],
    config: ProbeConfig,
    *,
    hit_stream: Optional[TextIO] = None,
    hits_path: Optional[Path] = None,
    events_path: Optional[Path] = None,
) -> Tuple[Dict[str, Any], int]:
    """Run one scan and return ``(summary, exit_code)``.

    Hits go to ``hits_path`` when given, else to ``hit_stream``. Each outcome
    is appended to ``events_path`` as a JSON line when given.
    """

    if not targets:
        raise ConfigurationError("Target list is empty")
    prepare_output_root(config)
    started_at = datetime.now(timezone.utc)

    with ExitStack() as stack:
        hit_sink = hit_stream
        if hits_path is not None:
            hit_sink = stack.enter_context(hits_path.open("w", encoding="utf-8"))
        outcome_hook: Optional[OutcomeHook] = None
        if events_path is not None:
            events = stack.enter_context(events_path.open("w", encoding="utf-8"))

            def _write_event(outcome: ProbeOutcome) -> None:
                events.write(outcome.to_json() + "\n")

            outcome_hook = _write_event

        logger.info("Starting scanning of %d target(s)...", len(targets))
        prober = URLProber(config)
        report = asyncio.run(prober.probe_many(targets, hit_sink=hit_sink, outcome_hook=outcome_hook))

    finished_at = datetime.now(timezone.utc)
    if report.nothing_found:
        logger.warning(render_summary(report))
    else:
        logger.info(render_summary(report))

    summary = report.to_dict()
    summary.update(
        {
            "output_root": str(config.output_root),
            "started_at": _timestamp(started_at),
            "finished_at": _timestamp(finished_at),
            "duration_ms": int((finished_at - started_at).total_seconds() * 1000),
        }
    )
    return summary, 0
