"""Shared payload keys to avoid magic strings across leakprober modules."""

from __future__ import annotations

# Outcome/event keys
K_URL = "url"
K_FINAL_URL = "final_url"
K_OUTCOME = "outcome"
K_STATUS = "status"
K_PATH = "path"
K_SIZE = "size"
K_ERROR = "error"

# Summary keys
K_COUNTS = "counts"
K_HITS = "hits"
K_SKIPPED_TARGETS = "skipped_targets"
