"""leakprober: probe hosts for misplaced sensitive files."""

from .workflows import ProbeConfig, ProbeOutcome, ScanReport, URLProber

__version__ = "0.1.0"

__all__ = ["ProbeConfig", "ProbeOutcome", "ScanReport", "URLProber", "__version__"]
