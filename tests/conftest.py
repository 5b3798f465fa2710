# tests/conftest.py
"""
Shared pytest fixtures for versionkeeper.

Design goals
------------
- Hermetic: every test works on a throwaway repository layout under tmp_path.
- No real VCS unless a test opts in (integration tests with a real `git`).
- Fakes implement the same contracts as the production collaborators:
    FakeVcs            ↔ versionkeeper.vcs.GitClient
    FakeDependencySync ↔ versionkeeper.vcs.CommandDependencySync
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

# Allow running the suite from a checkout without installing (src/ layout).
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from versionkeeper.errors import DependencySyncFailed, VcsCommandFailed  # noqa: E402

# -----------------------------------------------------------------------------
# Sample files
# -----------------------------------------------------------------------------

CARGO_TOML = """\
[package]
name = "root-helper"
version = "9.9.9"

[workspace]
resolver = "2"
members = ["src/cortex-cli"]

[workspace.package]
# shared by every crate in the workspace
version = "0.0.6"  # keep in sync with VERSION
edition = "2021"
license = "MIT"

[workspace.dependencies]
serde = { version = "1.0", features = ["derive"] }
"""

CLI_CARGO_TOML = """\
[package]
name = "cortex-cli"
version.workspace = true
edition.workspace = true
"""


def write_repo(root: Path, version: str = "0.0.6", manifest: str = CARGO_TOML) -> Path:
    """Lay out VERSION + Cargo.toml + a delegating crate manifest under `root`."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "VERSION").write_text(f"{version}\n", encoding="utf-8")
    (root / "Cargo.toml").write_text(manifest.replace('"0.0.6"', f'"{version}"'), encoding="utf-8")
    crate = root / "src" / "cortex-cli"
    crate.mkdir(parents=True, exist_ok=True)
    (crate / "Cargo.toml").write_text(CLI_CARGO_TOML, encoding="utf-8")
    return root


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    return write_repo(tmp_path / "repo")


# -----------------------------------------------------------------------------
# Fakes
# -----------------------------------------------------------------------------

class FakeVcs:
    """Records calls; `fail_on` names operations ("commit", "tag", "push") that should fail."""

    def __init__(
        self,
        pending: Optional[List[str]] = None,
        tags: Optional[Sequence[str]] = None,
        branch: str = "main",
        fail_on: Sequence[str] = (),
    ) -> None:
        self.pending = list(pending or [])
        self.tags = set(tags or [])
        self.branch = branch
        self.fail_on = set(fail_on)
        self.calls: List[tuple] = []

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            raise VcsCommandFailed(f"git {op} failed")

    def pending_changes(self) -> List[str]:
        self.calls.append(("status",))
        return list(self.pending)

    def tag_exists(self, tag: str) -> bool:
        return tag in self.tags

    def current_branch(self) -> str:
        return self.branch

    def commit(self, paths: Sequence[Path], message: str) -> None:
        self._maybe_fail("commit")
        self.calls.append(("commit", [str(p) for p in paths], message))

    def tag(self, tag: str, message: str) -> None:
        self._maybe_fail("tag")
        self.tags.add(tag)
        self.calls.append(("tag", tag))

    def push(self, remote: str, ref: str) -> None:
        self._maybe_fail("push")
        self.calls.append(("push", remote, ref))

    @property
    def mutations(self) -> List[tuple]:
        return [c for c in self.calls if c[0] != "status"]


class FakeDependencySync:
    def __init__(self, lock: Optional[Path] = None, fail: bool = False) -> None:
        self.lock = lock
        self.fail = fail
        self.runs = 0

    def describe(self) -> str:
        return "cargo update --workspace"

    def sync(self) -> Optional[Path]:
        self.runs += 1
        if self.fail:
            raise DependencySyncFailed("'cargo' not found; lock file not regenerated")
        return self.lock


@pytest.fixture()
def fake_vcs() -> FakeVcs:
    return FakeVcs()


@pytest.fixture()
def make_vcs():
    return FakeVcs


@pytest.fixture()
def make_sync():
    return FakeDependencySync


@pytest.fixture()
def make_repo():
    return write_repo


# -----------------------------------------------------------------------------
# CLI
# -----------------------------------------------------------------------------

@pytest.fixture()
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture()
def cli_app():
    from versionkeeper.cli import app

    return app


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """CLI runs bind handlers to the runner's streams; drop them once the test is done."""
    yield
    from versionkeeper.logging_utils import PACKAGE_LOGGER

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
