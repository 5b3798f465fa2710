#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.vcs — external collaborators (git and the dependency lock tool)

Both are thin subprocess wrappers: strict argv lists, no shell, output captured. A non-zero
exit or a missing executable becomes VcsCommandFailed (git) or DependencySyncFailed (lock
regeneration, advisory). Nothing here retries.

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .errors import DependencySyncFailed, VcsCommandFailed

log = logging.getLogger(__name__)


class Vcs(Protocol):
    def pending_changes(self) -> List[str]: ...

    def tag_exists(self, tag: str) -> bool: ...

    def current_branch(self) -> str: ...

    def commit(self, paths: Sequence[Path], message: str) -> None: ...

    def tag(self, tag: str, message: str) -> None: ...

    def push(self, remote: str, ref: str) -> None: ...


class DependencySync(Protocol):
    def describe(self) -> str: ...

    def sync(self) -> Optional[Path]: ...


def run(cmd: List[str], *, cwd: Path) -> subprocess.CompletedProcess:
    """Run `cmd` in `cwd`, capturing text output; FileNotFoundError propagates."""
    log.debug("$ %s", " ".join(cmd))
    return subprocess.run(cmd, cwd=str(cwd), check=False, capture_output=True, text=True)


# -----------------------------------------------------------------------------
# Git
# -----------------------------------------------------------------------------
class GitClient:
    def __init__(self, root: Path, executable: str = "git") -> None:
        self.root = Path(root)
        self.executable = executable

    def _git(self, *args: str) -> str:
        cmd = [self.executable, *args]
        try:
            cp = run(cmd, cwd=self.root)
        except FileNotFoundError:
            raise VcsCommandFailed(f"{self.executable!r} executable not found") from None
        if cp.returncode != 0:
            err = (cp.stderr or cp.stdout or "").strip()
            raise VcsCommandFailed(f"`{' '.join(cmd)}` exited {cp.returncode}: {err}")
        return cp.stdout

    def pending_changes(self) -> List[str]:
        """Staged or unstaged changes to tracked files, one porcelain line each."""
        out = self._git("status", "--porcelain", "--untracked-files=no")
        return [ln for ln in out.splitlines() if ln.strip()]

    def tag_exists(self, tag: str) -> bool:
        return bool(self._git("tag", "--list", tag).strip())

    def current_branch(self) -> str:
        branch = self._git("rev-parse", "--abbrev-ref", "HEAD").strip()
        if branch == "HEAD":
            raise VcsCommandFailed("detached HEAD; cannot determine the branch to push")
        return branch

    def _rel(self, path: Path) -> str:
        path = Path(path)
        try:
            return str(path.resolve().relative_to(self.root.resolve()))
        except ValueError:
            return str(path)

    def commit(self, paths: Sequence[Path], message: str) -> None:
        self._git("add", "--", *[self._rel(p) for p in paths])
        self._git("commit", "-m", message)
        log.info("committed: %s", message)

    def tag(self, tag: str, message: str) -> None:
        self._git("tag", "-a", tag, "-m", message)
        log.info("tagged %s", tag)

    def push(self, remote: str, ref: str) -> None:
        self._git("push", remote, ref)
        log.info("pushed %s to %s", ref, remote)


# -----------------------------------------------------------------------------
# Dependency lock regeneration
# -----------------------------------------------------------------------------
class CommandDependencySync:
    """Runs a lock-regeneration command (e.g. `cargo update --workspace`)."""

    def __init__(self, command: Sequence[str], lock_file: Optional[Path], root: Path) -> None:
        self.command = list(command)
        self.lock_file = Path(lock_file) if lock_file else None
        self.root = Path(root)

    def describe(self) -> str:
        return " ".join(self.command) if self.command else "(disabled)"

    def sync(self) -> Optional[Path]:
        """Regenerate the lock file; return it when it exists afterwards."""
        if not self.command:
            return None
        try:
            cp = run(self.command, cwd=self.root)
        except FileNotFoundError:
            raise DependencySyncFailed(f"{self.command[0]!r} not found; lock file not regenerated") from None
        if cp.returncode != 0:
            err = (cp.stderr or cp.stdout or "").strip()
            raise DependencySyncFailed(f"`{self.describe()}` exited {cp.returncode}: {err}")
        if self.lock_file is not None and self.lock_file.exists():
            return self.lock_file
        return None
