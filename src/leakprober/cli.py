from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv

from .scanner import build_config, load_targets, run_scan
from .workflows.candidates import generate
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.web_probe import ConfigurationError

app = typer.Typer(add_help_option=False, no_args_is_help=False)


def _minimal_help() -> str:
    return """leakprober

Usage:
  leakprober scan [<targets.txt|->] [--out <DIR>] [--workers N] [--timeout S] [--delay S]
  leakprober candidates <hostname> [--shuffle]
  leakprober doctor

Common options:
  --out, -o <DIR>    Save confirmed files under <DIR>/<host>/<path> (default: ./output).
  --workers, -t N    Max concurrent probes.
  --timeout, -T S    Hard deadline per probe, body included.
  --delay S          Minimum spacing between probe starts, shared by all targets.
  --insecure, -k     Skip TLS certificate validation.
  --proxy, -p URL    Route every request through this proxy.
  --hits <FILE>      Write confirmed hit URLs here instead of stdout.
  --json             Print the run summary JSON to stdout.

Discoverability:
  --help-full     Expanded help + env vars + artifacts.
  --find <query>  Search commands, flags, env vars, artifacts.
  --doctor        Run environment diagnostics and exit.
"""


def _help_full() -> str:
    return """leakprober: probe hosts for misplaced backups, credentials and configs

Commands:
  scan         Probe every candidate path on every target URL.
  candidates   Print the candidate paths generated for a hostname.
  doctor       Print environment and configuration diagnostics.

Scan options:
  --connect-timeout S   Bound on TCP/TLS handshake.
  --header-timeout S    Bound on waiting for response bytes.
  --user-agent UA       Fixed User-Agent (default: randomised per request).
  --shuffle             Randomise candidate order per target.
  --events <FILE>       Append every probe outcome as a JSON line.
  --log-level LEVEL     DEBUG, INFO, WARNING, ERROR (default INFO).

Environment (flags win over env; a .env file is honoured):
  LEAKPROBER_OUTPUT_DIR
  LEAKPROBER_WORKERS
  LEAKPROBER_TIMEOUT
  LEAKPROBER_CONNECT_TIMEOUT
  LEAKPROBER_HEADER_TIMEOUT
  LEAKPROBER_DELAY
  LEAKPROBER_INSECURE
  LEAKPROBER_PROXY
  LEAKPROBER_USER_AGENT
  LEAKPROBER_SHUFFLE

Artifacts:
  <out>/<host>/<path>   Confirmed files, stored under the URL they were served from.
  stdout / --hits       One confirmed URL per line.
  --events file         One JSON object per probe outcome.

Exit codes:
  0  run completed (with or without hits)
  2  configuration or input error
  3  unexpected fatal error
"""


_FIND_INDEX = [
    ("command", "scan", "Probe every candidate path on every target URL."),
    ("command", "candidates", "Print the candidate paths generated for a hostname."),
    ("command", "doctor", "Print environment and configuration diagnostics."),
    ("flag", "--out", "Output root for confirmed files."),
    ("flag", "--workers", "Max concurrent probes."),
    ("flag", "--timeout", "Hard deadline per probe."),
    ("flag", "--connect-timeout", "Bound on TCP/TLS handshake."),
    ("flag", "--header-timeout", "Bound on waiting for response bytes."),
    ("flag", "--delay", "Minimum spacing between probe starts."),
    ("flag", "--insecure", "Skip TLS certificate validation."),
    ("flag", "--proxy", "Route every request through a proxy."),
    ("flag", "--user-agent", "Fixed User-Agent instead of a random one."),
    ("flag", "--shuffle", "Randomise candidate order per target."),
    ("flag", "--hits", "Write confirmed hit URLs to a file."),
    ("flag", "--events", "Write probe outcomes as JSON lines."),
    ("flag", "--json", "Print summary JSON to stdout."),
    ("flag", "--help-full", "Expanded help, env vars, artifacts."),
    ("flag", "--find", "Search commands, flags, env vars, artifacts."),
    ("flag", "--doctor", "Run environment diagnostics and exit."),
    ("env", "LEAKPROBER_OUTPUT_DIR", "Default output root."),
    ("env", "LEAKPROBER_WORKERS", "Default worker limit."),
    ("env", "LEAKPROBER_TIMEOUT", "Default per-probe deadline (seconds)."),
    ("env", "LEAKPROBER_CONNECT_TIMEOUT", "Default connect timeout (seconds)."),
    ("env", "LEAKPROBER_HEADER_TIMEOUT", "Default header timeout (seconds)."),
    ("env", "LEAKPROBER_DELAY", "Default spacing between probe starts (seconds)."),
    ("env", "LEAKPROBER_INSECURE", "Skip TLS verification when truthy."),
    ("env", "LEAKPROBER_PROXY", "Default proxy URL."),
    ("env", "LEAKPROBER_USER_AGENT", "Fixed User-Agent."),
    ("env", "LEAKPROBER_SHUFFLE", "Shuffle candidates when truthy."),
    ("artifact", "<out>/<host>/<path>", "Confirmed files."),
    ("artifact", "hits", "Confirmed URLs, one per line."),
    ("artifact", "events", "Probe outcomes as JSON lines."),
]


def _run_find(query: str) -> str:
    needle = (query or "").strip().lower()
    if not needle:
        return ""
    lines = []
    for category, name, desc in _FIND_INDEX:
        haystack = f"{category} {name} {desc}".lower()
        if needle in haystack:
            lines.append(f"{category} {name} - {desc}")
    return "\n".join(lines)


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}")
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    help: bool = typer.Option(False, "--help", "-h", is_eager=True, help="Show minimal help."),
    help_full: bool = typer.Option(False, "--help-full", is_eager=True, help="Show expanded help."),
    find: Optional[str] = typer.Option(None, "--find", is_eager=True, help="Search commands, flags, env vars, artifacts."),
    doctor: bool = typer.Option(False, "--doctor", is_eager=True, help="Run environment diagnostics and exit."),
) -> None:
    load_dotenv(find_dotenv(usecwd=True), override=False)
    if help_full:
        typer.echo(_help_full())
        raise typer.Exit(code=0)
    if find is not None:
        output = _run_find(find)
        if output:
            typer.echo(output)
        raise typer.Exit(code=0)
    if doctor:
        report = build_doctor_report()
        typer.echo(format_doctor_report(report))
        raise typer.Exit(code=0 if report.get("ok", True) else 2)
    if help or ctx.invoked_subcommand is None:
        typer.echo(_minimal_help())
        raise typer.Exit(code=0)


@app.command("doctor", add_help_option=True)
def doctor_cmd() -> None:
    """Print environment and configuration diagnostics."""
    report = build_doctor_report()
    typer.echo(format_doctor_report(report))
    raise typer.Exit(code=0 if report.get("ok", True) else 2)


@app.command("candidates", add_help_option=True)
def candidates_cmd(
    hostname: str = typer.Argument("", help="Hostname whose name seeds archive/dump candidates."),
    shuffle: bool = typer.Option(False, "--shuffle", help="Randomise the order."),
) -> None:
    """Print the candidate paths generated for a hostname."""
    for candidate in generate(hostname, shuffle=shuffle):
        typer.echo(candidate)


@app.command("scan", add_help_option=True)
def scan(
    path_or_dash: str = typer.Argument("-", help="File with one target URL per line, or '-' for stdin."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Output root for confirmed files."),
    workers: Optional[int] = typer.Option(None, "--workers", "-t", help="Max concurrent probes."),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-T", help="Hard deadline per probe (seconds)."),
    connect_timeout: Optional[float] = typer.Option(None, "--connect-timeout", help="TCP/TLS handshake bound (seconds)."),
    header_timeout: Optional[float] = typer.Option(None, "--header-timeout", help="Response-byte wait bound (seconds)."),
    delay: Optional[float] = typer.Option(None, "--delay", help="Minimum spacing between probe starts (seconds)."),
    insecure: Optional[bool] = typer.Option(None, "--insecure", "-k", help="Skip TLS certificate validation."),
    proxy: Optional[str] = typer.Option(None, "--proxy", "-p", help="Proxy URL for all requests."),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="Fixed User-Agent."),
    shuffle: Optional[bool] = typer.Option(None, "--shuffle", help="Randomise candidate order per target."),
    hits: Optional[Path] = typer.Option(None, "--hits", help="Write confirmed hit URLs to this file."),
    events: Optional[Path] = typer.Option(None, "--events", help="Write probe outcomes as JSON lines."),
    json_out: bool = typer.Option(False, "--json", help="Print summary JSON to stdout."),
    log_level: str = typer.Option("INFO", "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
) -> None:
    """Probe every candidate path on every target URL."""
    _configure_logging(log_level)
    try:
        config = build_config(
            output_root=out,
            workers=workers,
            timeout=timeout,
            connect_timeout=connect_timeout,
            header_timeout=header_timeout,
            delay=delay,
            skip_verify=insecure,
            proxy_url=proxy,
            user_agent=user_agent,
            shuffle=shuffle,
        )
        targets = load_targets(path_or_dash)
    except (ConfigurationError, OSError) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)

    try:
        summary, exit_code = run_scan(
            targets,
            config,
            hit_stream=None if json_out else sys.stdout,
            hits_path=hits,
            events_path=events,
        )
    except ConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    except Exception as exc:
        typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=3)
    if json_out:
        sys.stdout.write(json.dumps(summary, ensure_ascii=False) + "\n")
    raise typer.Exit(code=exit_code)
