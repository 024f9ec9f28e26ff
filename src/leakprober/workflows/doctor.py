from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

import aiohttp

from .probe_config import ENV_PROXY, ENV_VARS
from .web_probe import ConfigurationError, ProbeConfig

_SECRET_TOKENS = ("key", "token", "secret", "password", "pass", "proxy")
_PROXY_ENV_NAMES = ("HTTPS_PROXY", "https_proxy", "HTTP_PROXY", "http_proxy")


def redact_value(value: str) -> str:
    """Hide credentials: userinfo in URLs, all but the last four chars otherwise."""

    raw = (value or "").strip()
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError:
        parts, port = None, None
    if parts is not None and parts.scheme and parts.hostname:
        if not (parts.username or parts.password):
            return raw
        netloc = f"***@{parts.hostname}" + (f":{port}" if port else "")
        return urlunsplit((parts.scheme, netloc, parts.path, "", ""))
    if len(raw) <= 8:
        return "*" * len(raw)
    return "*" * (len(raw) - 4) + raw[-4:]


def _shown_value(name: str, value: str) -> str:
    lowered = name.lower()
    if any(token in lowered for token in _SECRET_TOKENS):
        return redact_value(value)
    return value


def _check_writable(path: Path) -> bool:
    try:
        if path.exists():
            return path.is_dir() and os.access(path, os.W_OK)
        parent = path.resolve().parent
        while not parent.exists():
            parent = parent.parent
        return os.access(parent, os.W_OK)
    except OSError:
        return False


def _open_file_limit() -> Optional[int]:
    try:
        import resource
    except ImportError:  # pragma: no cover - non-POSIX platforms
        return None
    soft, _hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    if soft == resource.RLIM_INFINITY:
        return None
    return int(soft)


class _Checks:
    """Accumulates doctor checks; a failed ``warn`` check marks the report not ok."""

    def __init__(self) -> None:
        self.ok = True
        self.entries: List[Dict[str, Any]] = []

    def add(
        self,
        name: str,
        passed: bool,
        detail: str,
        *,
        level: str = "warn",
        remedy: Optional[str] = None,
        value: Optional[str] = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "name": name,
            "status": "ok" if passed else "missing",
            "level": level,
            "detail": detail,
        }
        if value is not None:
            entry["value"] = _shown_value(name, value)
        if remedy and not passed:
            entry["remedy"] = remedy
        self.entries.append(entry)
        if not passed and level == "warn":
            self.ok = False


def _run_checks(checks: _Checks, config: Optional[ProbeConfig]) -> None:
    checks.add("aiohttp", True, f"aiohttp {aiohttp.__version__}", level="info")

    if config is None:
        try:
            config = ProbeConfig.from_env().validate()
        except ConfigurationError as exc:
            checks.add(
                "config",
                False,
                str(exc),
                remedy="Fix the LEAKPROBER_* environment variables (see `leakprober --help-full`).",
            )
            return
    checks.add(
        "config",
        True,
        f"workers={config.workers} timeout={config.timeout}s connect={config.connect_timeout}s "
        f"header={config.header_timeout}s delay={config.delay}s",
        level="info",
    )
    checks.add(
        "output_dir",
        _check_writable(config.output_root),
        str(config.output_root),
        remedy="Create the output directory or point LEAKPROBER_OUTPUT_DIR at a writable location.",
    )

    limit = _open_file_limit()
    if limit is not None:
        checks.add(
            "open_files",
            config.workers < limit,
            f"workers={config.workers} soft_limit={limit}",
            remedy="Lower --workers or raise the open-file limit (ulimit -n).",
        )

    if config.proxy_url:
        checks.add(ENV_PROXY, True, "explicit proxy", level="info", value=config.proxy_url)
    else:
        env_proxy = next((os.environ[name] for name in _PROXY_ENV_NAMES if os.environ.get(name)), None)
        checks.add(
            "HTTP(S)_PROXY",
            env_proxy is not None,
            "environment proxy" if env_proxy else "direct connections",
            level="info",
            value=env_proxy,
        )

    if config.skip_verify:
        checks.add("tls_verify", False, "certificate validation disabled", level="info")

    for name in ENV_VARS:
        value = os.getenv(name)
        if value is not None and name != ENV_PROXY:
            checks.add(name, True, "set", level="info", value=value)


def build_doctor_report(config: Optional[ProbeConfig] = None) -> Dict[str, Any]:
    checks = _Checks()
    _run_checks(checks, config)
    return {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": checks.ok,
        "checks": checks.entries,
    }


def format_doctor_report(report: Dict[str, Any]) -> str:
    """One line per check: mark, name, then the (redacted) value and detail."""

    checks = report.get("checks", [])
    width = max((len(check["name"]) for check in checks), default=0)
    lines = [f"leakprober doctor (generated {report.get('generated_at')})"]
    for check in checks:
        if check["status"] == "ok":
            mark = "ok"
        elif check["level"] == "warn":
            mark = "FAIL"
        else:
            mark = "off"
        shown = " ".join(part for part in (check.get("value"), f"[{check['detail']}]") if part)
        lines.append(f"{mark:<4} {check['name']:<{width}}  {shown}")
        if "remedy" in check:
            lines.append(f"{'':<4} {'':<{width}}  fix: {check['remedy']}")
    return "\n".join(lines) + "\n"
