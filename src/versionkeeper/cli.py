#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper CLI

Commands:
  get        Print the canonical version
  check      Verify VERSION == manifest (== expected release when given); exit 1 on mismatch
  bump       Bump patch/minor/major or set X.Y.Z[-pre] in both files (--dry-run to preview)
  release    clean check → bump → lock sync → commit → tag → [push] (--push, --dry-run)

Global options:
  --root / --config     repository root and YAML settings file (default: <root>/versionkeeper.yaml)
  --log-level / --no-rich
  --json                machine-readable output on stdout (for CI)

Exit codes: 0 OK, 1 failure (mismatch, invalid version, write/VCS failure), 2 usage, 130 interrupted.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import json
import signal
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import Settings, load_settings
from .consistency import ConsistencyChecker, Report
from .errors import VersionKeeperError
from .logging_utils import JsonlLogger, get_logger, init_logger
from .manifest import DelegatingManifest, ManifestPatcher
from .release import FileChange, ReleaseOrchestrator, ReleaseReport, Status, VersionBumper
from .semver import parse_bump
from .stores import VersionStore
from .vcs import CommandDependencySync, GitClient

# ---------------------------------------------------------------------
# Typer app & runtime context
# ---------------------------------------------------------------------
app = typer.Typer(
    name="versionkeeper",
    help="Keep VERSION and the manifest in sync and cut releases.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)
log = get_logger("cli")


@dataclass
class RuntimeCtx:
    settings: Settings = field(default_factory=Settings)
    json: bool = False


CTX = RuntimeCtx()

STATUS_STYLE = {
    Status.DONE: "green",
    Status.PLANNED: "cyan",
    Status.SKIPPED: "dim",
    Status.WARNING: "yellow",
    Status.FAILED: "red",
}


# ---------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------
def _store() -> VersionStore:
    return VersionStore.at(CTX.settings.version_path)


def _patcher() -> ManifestPatcher:
    s = CTX.settings
    return ManifestPatcher.at(s.manifest_path, s.manifest_section, s.manifest_field)


def _checker() -> ConsistencyChecker:
    s = CTX.settings
    delegating = None
    if s.delegating_manifest:
        delegating = DelegatingManifest.at(s.path(s.delegating_manifest), s.delegating_section)
    return ConsistencyChecker(delegating, tag_prefix=s.tag_prefix)


def _audit() -> Optional[JsonlLogger]:
    s = CTX.settings
    return JsonlLogger(s.path(s.audit_log)) if s.audit_log else None


def _orchestrator() -> ReleaseOrchestrator:
    s = CTX.settings
    sync = CommandDependencySync(s.lock_command, s.path(s.lock_file), s.root) if s.lock_command else None
    return ReleaseOrchestrator(
        _store(),
        _patcher(),
        GitClient(s.root),
        sync,
        tag_prefix=s.tag_prefix,
        commit_template=s.commit_template,
        remote=s.remote,
        audit=_audit(),
    )


# ---------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------
def _echo_json(payload: Dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _print_error(e: VersionKeeperError) -> None:
    err_console.print(f"[red]error[/red] {escape(e.describe())}")


@contextmanager
def _errors_to_exit() -> Iterator[None]:
    try:
        yield
    except VersionKeeperError as e:
        if CTX.json:
            _echo_json({"ok": False, "error": e.describe(), "kind": e.kind, "stage": e.stage})
        else:
            _print_error(e)
        raise typer.Exit(code=1)


def _print_changes(changes: List[FileChange]) -> None:
    for c in changes:
        d = c.diff
        if d.strip():
            console.print(escape(d.rstrip("\n")), highlight=False)
        else:
            console.print(f"[dim]--- {escape(c.path)} (no textual change)[/dim]")


def _print_report(report: Report) -> None:
    t = Table(title="Version consistency", box=box.SIMPLE_HEAVY)
    t.add_column("Pair")
    t.add_column("Canonical")
    t.add_column("Other")
    t.add_column("Result")
    for c in report.comparisons:
        t.add_row(c.pair, c.left, c.right, "[green]pass[/green]" if c.passed else "[red]fail (Mismatch)[/red]")
    console.print(t)
    for note in report.advisories:
        console.print(f"[yellow]advisory[/yellow] {escape(note)}")
    console.print("✅ Versions consistent." if report.passed else f"❌ {len(report.failures)} Mismatch(es).")


def _print_release(report: ReleaseReport) -> None:
    title = "Release plan (dry-run)" if report.dry_run else "Release"
    t = Table(title=title, box=box.SIMPLE_HEAVY)
    t.add_column("Stage")
    t.add_column("Status")
    t.add_column("Detail")
    for o in report.outcomes:
        style = STATUS_STYLE[o.status]
        t.add_row(o.stage.value, f"[{style}]{o.status.value}[/{style}]", escape(o.detail))
    console.print(t)
    if report.previous and report.new:
        console.print(f"Version: {report.previous} → [bold]{report.new}[/bold]")
    if report.commit_message:
        console.print(f"Commit: {escape(report.commit_message)}")
    if report.tag:
        console.print(f"Tag: {escape(report.tag)}")
    for w in report.warnings:
        console.print(f"[yellow]warning[/yellow] {escape(w)}")
    if report.dry_run and report.changes:
        _print_changes(report.changes)


# ---------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------
def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _root_callback(
    root: Path = typer.Option(Path("."), "--root", help="Repository root"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML settings file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    no_rich: bool = typer.Option(False, "--no-rich", help="Plain console and log output"),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON result on stdout"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show package version and exit."
    ),
) -> None:
    global console, err_console
    console = Console(no_color=True, highlight=False) if no_rich else Console()
    err_console = Console(stderr=True, no_color=True, highlight=False) if no_rich else Console(stderr=True)
    try:
        CTX.settings = load_settings(root=root, config=config)
    except VersionKeeperError as e:
        _print_error(e)
        raise typer.Exit(code=1)
    CTX.json = as_json
    init_logger(log_level or CTX.settings.log_level, rich=not no_rich)
    log.debug("settings: %s", CTX.settings.to_dict())


# ---------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------
@app.command("get")
def get_version() -> None:
    """Print the canonical version."""
    with _errors_to_exit():
        v = _store().get()
    if CTX.json:
        _echo_json({"ok": True, "version": str(v), "source": str(CTX.settings.version_path)})
    else:
        typer.echo(str(v))


@app.command("check")
def check(
    expected: Optional[str] = typer.Option(
        None,
        "--expected",
        "-e",
        envvar="VERSIONKEEPER_EXPECTED_RELEASE",
        help="Expected release version or tag (e.g. v0.0.6, refs/tags/v0.0.6)",
    ),
) -> None:
    """Verify the canonical version, the manifest and (optionally) the expected release agree."""
    with _errors_to_exit():
        report = _checker().run(_store(), _patcher(), expected)
    if CTX.json:
        _echo_json(report.to_dict())
    else:
        _print_report(report)
    if not report.passed:
        raise typer.Exit(code=1)


@app.command("bump")
def bump_version(
    target: str = typer.Argument(..., metavar="patch|minor|major|X.Y.Z[-pre]", help="Bump kind or explicit version"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the change without writing files"),
) -> None:
    """Bump the version in VERSION and the manifest."""
    with _errors_to_exit():
        result = VersionBumper(_store(), _patcher()).apply(parse_bump(target), dry_run=dry_run)
    if not dry_run:
        audit = _audit()
        if audit is not None:
            audit.log({"command": "bump", **result.to_dict()})
    if CTX.json:
        _echo_json(result.to_dict())
        return
    verb = "Would bump" if dry_run else "Bumped"
    console.print(f"{verb} {result.previous} → [bold]{result.new}[/bold]")
    if dry_run:
        _print_changes(result.changes)
    else:
        for c in result.changes:
            console.print(f"[green]Wrote[/green] {escape(c.path)}")


@app.command("release")
def release(
    target: str = typer.Argument(..., metavar="patch|minor|major|X.Y.Z[-pre]", help="Bump kind or explicit version"),
    push: bool = typer.Option(False, "--push", help="Push the branch and the new tag"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Plan every stage without touching files or git"),
) -> None:
    """Run the release pipeline: clean check, bump, lock sync, commit, tag, optional push."""
    with _errors_to_exit():
        spec = parse_bump(target)
        report = _orchestrator().run(spec, push=push, dry_run=dry_run)
    if CTX.json:
        _echo_json(report.to_dict())
    else:
        _print_release(report)
    if not report.ok:
        if not CTX.json:
            _print_error(report.error)
            done = [o.stage.value for o in report.outcomes if o.status is Status.DONE]
            if done:
                err_console.print(f"[yellow]completed stages left in place[/yellow]: {', '.join(done)}")
        raise typer.Exit(code=1)
    if not CTX.json:
        console.print("✅ Dry-run complete." if dry_run else f"✅ Released {report.tag}.")


# ---------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------
def _install_sigint_handler() -> None:
    def h(sig, frm):
        err_console.print("\n[red]Interrupted[/red]")
        raise SystemExit(130)

    try:
        signal.signal(signal.SIGINT, h)
    except ValueError:
        # not on the main thread
        pass


def main() -> None:  # pragma: no cover
    _install_sigint_handler()
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
