"""High-level exports for the probing workflows."""

from .candidates import generate, generate_combinations
from .probe_utils import InvalidPath, InvalidTarget, Target, parse_target, resolve_candidate
from .web_probe import (
    ConfigurationError,
    PacingGate,
    ProbeConfig,
    ProbeOutcome,
    RunCounters,
    ScanReport,
    URLProber,
)

__all__ = [
    "ConfigurationError",
    "InvalidPath",
    "InvalidTarget",
    "PacingGate",
    "ProbeConfig",
    "ProbeOutcome",
    "RunCounters",
    "ScanReport",
    "Target",
    "URLProber",
    "generate",
    "generate_combinations",
    "parse_target",
    "resolve_candidate",
]
