"""Shared fixtures: environment isolation and real git repositories."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from pivotal_updater.config import ENV_PREFIX

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


@pytest.fixture(autouse=True)
def clean_env():
    """Remove all PIVOTAL_UPDATER_* env vars before and after each test."""
    env_keys = [k for k in os.environ if k.startswith(ENV_PREFIX)]
    saved = {k: os.environ.pop(k) for k in env_keys}
    yield
    for k in list(os.environ.keys()):
        if k.startswith(ENV_PREFIX):
            del os.environ[k]
    os.environ.update(saved)


def git(repo: Path, *args: str) -> str:
    """Run git in *repo* with a fixed identity and return stdout."""
    result = subprocess.run(
        [
            "git",
            "-c", "user.name=Test User",
            "-c", "user.email=test@example.com",
            "-c", "commit.gpgsign=false",
            "-c", "core.hooksPath=/dev/null",
            *args,
        ],
        cwd=str(repo),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


def commit_file(repo: Path, name: str, message: str) -> None:
    (repo / name).write_text(f"{name}\n", encoding="utf-8")
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", message)


def merge(repo: Path, branch: str, *paragraphs: str) -> None:
    args = ["merge", "-q", "--no-ff", branch]
    for paragraph in paragraphs:
        args += ["-m", paragraph]
    git(repo, *args)


@pytest.fixture()
def git_repo(tmp_path: Path) -> Path:
    """A repository on branch ``staging`` with one commit and a ``develop`` branch."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "checkout", "-q", "-b", "staging")
    commit_file(repo, "README", "Initial commit")
    git(repo, "branch", "develop")
    return repo


@pytest.fixture()
def released_repo(git_repo: Path) -> Path:
    """``develop`` merged into ``staging`` with two feature merges folded in.

    ``7-add-login`` was merged with ``@Complete``; ``8-fix-typo`` was not.
    """
    repo = git_repo
    git(repo, "checkout", "-q", "develop")

    git(repo, "checkout", "-q", "-b", "7-add-login")
    commit_file(repo, "login.txt", "Add login")
    git(repo, "checkout", "-q", "develop")
    merge(repo, "7-add-login", "Merge branch '7-add-login' into 'develop'", "@Complete")

    git(repo, "checkout", "-q", "-b", "8-fix-typo")
    commit_file(repo, "typo.txt", "Fix typo")
    git(repo, "checkout", "-q", "develop")
    merge(repo, "8-fix-typo", "Merge branch '8-fix-typo' into 'develop'")

    git(repo, "checkout", "-q", "staging")
    merge(repo, "develop", "Merge branch 'develop' into 'staging'")
    return repo
