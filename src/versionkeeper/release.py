#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.release — bump and release pipeline

Stages run strictly in order and stop at the first fatal error:

  check-clean-working-tree → bump-version → sync-dependency-artifacts
      → commit-changes → create-tag → [push-remote]

Nothing already completed is rolled back. The returned ReleaseReport carries one
StageOutcome per stage reached, the advisory warnings, and (on failure) the error with its
stage attached, so an operator can see exactly where a partial release stopped.

Dry-run executes every decision (bump arithmetic, downgrade check, manifest rendering,
clean-tree and tag-exists queries) but performs no filesystem or VCS mutation; stages are
reported as "planned" together with the diffs, commit message and tag they would produce.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import difflib
import enum
import logging
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import (
    AdvisoryWarning,
    ConfigError,
    DependencySyncFailed,
    DirtyWorkingTree,
    FileAccessFailed,
    TagExists,
    VersionKeeperError,
)
from .logging_utils import JsonlLogger
from .manifest import ManifestPatcher
from .semver import BumpSpec, Version, bump
from .stores import VersionStore
from .vcs import DependencySync, Vcs

log = logging.getLogger(__name__)

DEFAULT_COMMIT_TEMPLATE = "chore(release): v{version}"


class Stage(str, enum.Enum):
    CHECK_CLEAN = "check-clean-working-tree"
    BUMP = "bump-version"
    SYNC_DEPENDENCIES = "sync-dependency-artifacts"
    COMMIT = "commit-changes"
    TAG = "create-tag"
    PUSH = "push-remote"


class Status(str, enum.Enum):
    DONE = "done"
    PLANNED = "planned"
    SKIPPED = "skipped"
    WARNING = "warning"
    FAILED = "failed"


@dataclass(frozen=True)
class StageOutcome:
    stage: Stage
    status: Status
    detail: str = ""


@dataclass(frozen=True)
class FileChange:
    path: str
    old: str
    new: str

    @property
    def diff(self) -> str:
        a = self.old.splitlines(keepends=True)
        b = self.new.splitlines(keepends=True)
        return "".join(difflib.unified_diff(a, b, fromfile=f"{self.path} (old)", tofile=f"{self.path} (new)"))


# -----------------------------------------------------------------------------
# Bump
# -----------------------------------------------------------------------------
@dataclass
class BumpResult:
    previous: Version
    new: Version
    changes: List[FileChange] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "old_version": str(self.previous),
            "new_version": str(self.new),
            "changed_files": [c.path for c in self.changes],
            "warnings": list(self.warnings),
            "dry_run": self.dry_run,
        }


class VersionBumper:
    """Computes the next version and rewrites both version-bearing files."""

    def __init__(self, store: VersionStore, patcher: ManifestPatcher) -> None:
        self.store = store
        self.patcher = patcher

    def plan(self, spec: BumpSpec) -> BumpResult:
        current = self.store.get()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            new = bump(current, spec)
        result = BumpResult(previous=current, new=new)
        for w in caught:
            if issubclass(w.category, AdvisoryWarning):
                log.warning("%s: %s", w.category.__name__, w.message)
                result.warnings.append(f"{w.category.__name__}: {w.message}")
            else:
                warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)

        # render both files before any write so a bad manifest aborts with nothing touched
        manifest_old, manifest_new = self.patcher.render(new)
        result.changes = [
            FileChange(self.store.name, self.store.backend.read(), self.store.render(new)),
            FileChange(self.patcher.name, manifest_old, manifest_new),
        ]
        return result

    def apply(self, spec: BumpSpec, dry_run: bool = False) -> BumpResult:
        result = self.plan(spec)
        result.dry_run = dry_run
        if dry_run:
            log.info("dry-run: %s -> %s (no files written)", result.previous, result.new)
            return result
        self.store.set(result.new)
        self.patcher.set(result.new)
        log.info("version %s -> %s", result.previous, result.new)
        return result


# -----------------------------------------------------------------------------
# Release
# -----------------------------------------------------------------------------
@dataclass
class ReleaseReport:
    spec: Optional[BumpSpec] = None
    dry_run: bool = False
    push_requested: bool = False
    previous: Optional[Version] = None
    new: Optional[Version] = None
    outcomes: List[StageOutcome] = field(default_factory=list)
    changes: List[FileChange] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    commit_message: Optional[str] = None
    tag: Optional[str] = None
    error: Optional[VersionKeeperError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def failed_stage(self) -> Optional[Stage]:
        for o in self.outcomes:
            if o.status is Status.FAILED:
                return o.stage
        return None

    def record(self, stage: Stage, status: Status, detail: str = "") -> None:
        self.outcomes.append(StageOutcome(stage, status, detail))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "dry_run": self.dry_run,
            "old_version": str(self.previous) if self.previous else None,
            "new_version": str(self.new) if self.new else None,
            "files": list(self.files),
            "commit_message": self.commit_message,
            "tag": self.tag,
            "stages": [{"stage": o.stage.value, "status": o.status.value, "detail": o.detail} for o in self.outcomes],
            "warnings": list(self.warnings),
            "error": self.error.describe() if self.error else None,
        }


class ReleaseOrchestrator:
    def __init__(
        self,
        store: VersionStore,
        patcher: ManifestPatcher,
        vcs: Vcs,
        dependency_sync: Optional[DependencySync] = None,
        *,
        tag_prefix: str = "v",
        commit_template: str = DEFAULT_COMMIT_TEMPLATE,
        remote: str = "origin",
        audit: Optional[JsonlLogger] = None,
    ) -> None:
        self.store = store
        self.patcher = patcher
        self.vcs = vcs
        self.dependency_sync = dependency_sync
        self.tag_prefix = tag_prefix
        self.commit_template = commit_template
        self.remote = remote
        self.audit = audit
        self.bumper = VersionBumper(store, patcher)

    def tag_for(self, version: Version) -> str:
        return f"{self.tag_prefix}{version}"

    def commit_message(self, version: Version) -> str:
        try:
            return self.commit_template.format(version=version, tag=self.tag_for(version))
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigError(f"commit_template {self.commit_template!r} cannot be rendered: {e!r}") from None

    def run(self, spec: BumpSpec, *, push: bool = False, dry_run: bool = False) -> ReleaseReport:
        report = ReleaseReport(spec=spec, dry_run=dry_run, push_requested=push)
        stages: List[Tuple[Stage, Callable[[ReleaseReport], None]]] = [
            (Stage.CHECK_CLEAN, self._check_clean),
            (Stage.BUMP, self._bump),
            (Stage.SYNC_DEPENDENCIES, self._sync_dependencies),
            (Stage.COMMIT, self._commit),
            (Stage.TAG, self._tag),
            (Stage.PUSH, self._push),
        ]
        for stage, step in stages:
            log.debug("stage %s", stage.value)
            try:
                step(report)
            except OSError as e:
                err = FileAccessFailed(f"{e.filename}: {e.strerror}" if e.filename else str(e))
                self._fail(report, stage, err)
                break
            except VersionKeeperError as e:
                self._fail(report, stage, e)
                break
        self._audit(report)
        return report

    def _fail(self, report: ReleaseReport, stage: Stage, e: VersionKeeperError) -> None:
        e.stage = stage.value
        report.error = e
        report.record(stage, Status.FAILED, f"{e.kind}: {e.message}")
        log.error("release stopped at %s: %s", stage.value, e.describe())

    # -- stages ---------------------------------------------------------------
    def _check_clean(self, report: ReleaseReport) -> None:
        pending = self.vcs.pending_changes()
        if pending:
            preview = ", ".join(ln.strip() for ln in pending[:5])
            more = f" (+{len(pending) - 5} more)" if len(pending) > 5 else ""
            raise DirtyWorkingTree(f"{len(pending)} uncommitted change(s): {preview}{more}")
        report.record(Stage.CHECK_CLEAN, Status.DONE, "working tree clean")

    def _bump(self, report: ReleaseReport) -> None:
        result = self.bumper.apply(report.spec, dry_run=report.dry_run)
        report.previous, report.new = result.previous, result.new
        report.changes = result.changes
        report.warnings.extend(result.warnings)
        report.files = [c.path for c in result.changes]
        status = Status.PLANNED if report.dry_run else Status.DONE
        report.record(Stage.BUMP, status, f"{result.previous} -> {result.new}")

    def _sync_dependencies(self, report: ReleaseReport) -> None:
        if self.dependency_sync is None:
            report.record(Stage.SYNC_DEPENDENCIES, Status.SKIPPED, "no lock command configured")
            return
        if report.dry_run:
            report.record(Stage.SYNC_DEPENDENCIES, Status.PLANNED, f"would run `{self.dependency_sync.describe()}`")
            return
        try:
            lock = self.dependency_sync.sync()
        except DependencySyncFailed as w:
            log.warning("DependencySyncFailed: %s", w)
            report.warnings.append(f"DependencySyncFailed: {w}")
            report.record(Stage.SYNC_DEPENDENCIES, Status.WARNING, str(w))
            return
        if lock is not None:
            report.files.append(str(lock))
            report.record(Stage.SYNC_DEPENDENCIES, Status.DONE, f"regenerated {lock}")
        else:
            report.record(Stage.SYNC_DEPENDENCIES, Status.DONE, "no lock file produced")

    def _commit(self, report: ReleaseReport) -> None:
        message = self.commit_message(report.new)
        report.commit_message = message
        if report.dry_run:
            report.record(Stage.COMMIT, Status.PLANNED, f"would commit {', '.join(report.files)}: {message!r}")
            return
        self.vcs.commit([Path(p) for p in report.files], message)
        report.record(Stage.COMMIT, Status.DONE, message)

    def _tag(self, report: ReleaseReport) -> None:
        tag = self.tag_for(report.new)
        report.tag = tag
        if self.vcs.tag_exists(tag):
            raise TagExists(f"tag {tag} already exists")
        if report.dry_run:
            report.record(Stage.TAG, Status.PLANNED, f"would create tag {tag}")
            return
        self.vcs.tag(tag, tag)
        report.record(Stage.TAG, Status.DONE, tag)

    def _push(self, report: ReleaseReport) -> None:
        if not report.push_requested:
            report.record(Stage.PUSH, Status.SKIPPED, "push not requested")
            return
        branch = self.vcs.current_branch()
        if report.dry_run:
            report.record(Stage.PUSH, Status.PLANNED, f"would push {branch} and {report.tag} to {self.remote}")
            return
        self.vcs.push(self.remote, branch)
        self.vcs.push(self.remote, report.tag)
        report.record(Stage.PUSH, Status.DONE, f"{branch}, {report.tag} -> {self.remote}")

    def _audit(self, report: ReleaseReport) -> None:
        if self.audit is None or report.dry_run:
            return
        try:
            self.audit.log({"command": "release", **report.to_dict()})
        except OSError as e:
            log.warning("could not append audit record to %s: %s", self.audit.path, e)
