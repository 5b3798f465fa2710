# tests/integration/test_release_git.py
# versionkeeper — `release` against a real git repository
#
# Skipped when no `git` executable is available. Lock regeneration is disabled via
# versionkeeper.yaml (`lock_command: []`) so the tests do not depend on cargo.

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path

import pytest

from versionkeeper.errors import VcsCommandFailed
from versionkeeper.vcs import CommandDependencySync, GitClient

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("git") is None, reason="git not installed"),
]


def _git(root: Path, *args: str) -> str:
    cp = subprocess.run(["git", *args], cwd=str(root), check=True, capture_output=True, text=True)
    return cp.stdout


@pytest.fixture()
def git_repo(repo: Path) -> Path:
    (repo / "versionkeeper.yaml").write_text("lock_command: []\n", encoding="utf-8")
    _git(repo, "init", "-q")
    _git(repo, "config", "user.email", "release-bot@example.com")
    _git(repo, "config", "user.name", "Release Bot")
    _git(repo, "config", "commit.gpgsign", "false")
    _git(repo, "config", "tag.gpgsign", "false")
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", "initial")
    return repo


def _release(cli_runner, cli_app, repo: Path, *args: str):
    return cli_runner.invoke(cli_app, ["--root", str(repo), "--no-rich", "--log-level", "CRITICAL", "--json", "release", *args])


def test_dry_run_release_plans_without_mutation(cli_runner, cli_app, git_repo: Path):
    head = _git(git_repo, "rev-parse", "HEAD")
    result = _release(cli_runner, cli_app, git_repo, "minor", "--dry-run", "--push")
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["dry_run"] is True
    assert payload["new_version"] == "0.1.0"
    assert payload["commit_message"] == "chore(release): v0.1.0"
    assert payload["tag"] == "v0.1.0"
    assert [s["status"] for s in payload["stages"]] == ["done", "planned", "skipped", "planned", "planned", "planned"]

    assert _git(git_repo, "rev-parse", "HEAD") == head
    assert _git(git_repo, "tag", "--list") == ""
    assert (git_repo / "VERSION").read_text(encoding="utf-8") == "0.0.6\n"


def test_release_commits_and_tags(cli_runner, cli_app, git_repo: Path):
    result = _release(cli_runner, cli_app, git_repo, "patch")
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["ok"] is True

    assert _git(git_repo, "tag", "--list").split() == ["v0.0.7"]
    assert _git(git_repo, "log", "-1", "--format=%s").strip() == "chore(release): v0.0.7"
    assert _git(git_repo, "status", "--porcelain", "--untracked-files=no") == ""
    assert _git(git_repo, "show", "HEAD:VERSION") == "0.0.7\n"


def test_release_twice_same_version_hits_existing_tag(cli_runner, cli_app, git_repo: Path):
    assert _release(cli_runner, cli_app, git_repo, "1.0.0").exit_code == 0
    result = _release(cli_runner, cli_app, git_repo, "1.0.0", "--dry-run")
    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["error"].startswith("[create-tag] TagExists")


def test_release_refuses_dirty_tree(cli_runner, cli_app, git_repo: Path):
    (git_repo / "Cargo.toml").write_text("# edited\n", encoding="utf-8")
    result = cli_runner.invoke(cli_app, ["--root", str(git_repo), "--no-rich", "release", "patch"])
    assert result.exit_code == 1
    assert "DirtyWorkingTree" in result.output
    assert (git_repo / "VERSION").read_text(encoding="utf-8") == "0.0.6\n"


def test_untracked_files_do_not_count_as_dirty(git_repo: Path):
    (git_repo / "scratch.txt").write_text("x\n", encoding="utf-8")
    assert GitClient(git_repo).pending_changes() == []


def test_push_without_remote_fails_at_push_stage(cli_runner, cli_app, git_repo: Path):
    result = _release(cli_runner, cli_app, git_repo, "patch", "--push")
    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["error"].startswith("[push-remote] VcsCommandFailed")
    # tag and commit stay in place
    assert _git(git_repo, "tag", "--list").split() == ["v0.0.7"]


def test_git_client_missing_executable(tmp_path: Path):
    with pytest.raises(VcsCommandFailed, match="not found"):
        GitClient(tmp_path, executable="git-does-not-exist").pending_changes()


def test_dependency_sync_command_missing(tmp_path: Path):
    from versionkeeper.errors import DependencySyncFailed

    sync = CommandDependencySync(["cargo-does-not-exist", "update"], tmp_path / "Cargo.lock", tmp_path)
    with pytest.raises(DependencySyncFailed):
        sync.sync()
    assert CommandDependencySync([], None, tmp_path).sync() is None
