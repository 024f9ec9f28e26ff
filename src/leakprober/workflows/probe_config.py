"""Prober defaults (headers, floors, patterns, user-agent table, env names).

Centralizes static defaults so web_probe.py has no embedded magic strings.
Callers override any of them through a ProbeConfig.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

# Headers
HDR_ACCEPT = "Accept"
HDR_ACCEPT_LANGUAGE = "Accept-Language"
HDR_USER_AGENT = "User-Agent"
HDR_LOCATION = "Location"

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8"
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.8"

# Run defaults
DEFAULT_OUTPUT_DIR = Path("output")
WORKERS_PER_CPU = 25
DEFAULT_WORKERS = max(1, os.cpu_count() or 1) * WORKERS_PER_CPU
# ~45s is enough to pull a 5 GiB file over a 1 Gbit/s link
DEFAULT_TIMEOUT = 45.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_HEADER_TIMEOUT = 15.0
DEFAULT_DELAY = 0.0

# Validation
SIZE_FLOOR = 100
SNIFF_BYTES = 4096
SPOOL_CHUNK_BYTES = 64 * 1024
HTML_PATTERN = re.compile(rb"(?i)<(?:!doctype\s+html|html|head|body|script|meta)\b")
REDIRECT_STATUSES = {301, 302, 303, 307, 308}

# Storage
TEMP_PREFIX = ".leakprober-"
TEMP_SUFFIX = ".part"
INVALID_PATH_CHARS = re.compile(r'[\\:*?"<>|\x00-\x1f]+')
PATH_PLACEHOLDER = "_"
INDEX_FILENAME = "index"

# User-agent table: (platform, weight)
UA_PLATFORMS = (
    ("Windows NT 10.0; Win64; x64", 5),
    ("Macintosh; Intel Mac OS X 10_15_7", 3),
    ("X11; Linux x86_64", 2),
    ("Windows NT 6.1; Win64; x64", 1),
    ("Macintosh; Intel Mac OS X 10_14_6", 1),
)
# family -> (min major, max major)
UA_VERSION_RANGES = {
    "chrome": (88, 131),
    "edge": (88, 131),
    "firefox": (91, 132),
}

# Environment
ENV_OUTPUT_DIR = "LEAKPROBER_OUTPUT_DIR"
ENV_WORKERS = "LEAKPROBER_WORKERS"
ENV_TIMEOUT = "LEAKPROBER_TIMEOUT"
ENV_CONNECT_TIMEOUT = "LEAKPROBER_CONNECT_TIMEOUT"
ENV_HEADER_TIMEOUT = "LEAKPROBER_HEADER_TIMEOUT"
ENV_DELAY = "LEAKPROBER_DELAY"
ENV_INSECURE = "LEAKPROBER_INSECURE"
ENV_PROXY = "LEAKPROBER_PROXY"
ENV_USER_AGENT = "LEAKPROBER_USER_AGENT"
ENV_SHUFFLE = "LEAKPROBER_SHUFFLE"

ENV_VARS = (
    ENV_OUTPUT_DIR,
    ENV_WORKERS,
    ENV_TIMEOUT,
    ENV_CONNECT_TIMEOUT,
    ENV_HEADER_TIMEOUT,
    ENV_DELAY,
    ENV_INSECURE,
    ENV_PROXY,
    ENV_USER_AGENT,
    ENV_SHUFFLE,
)
