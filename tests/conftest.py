"""Shared fixtures: throwaway git repositories."""

import subprocess
from pathlib import Path

import pytest


def git(repo: Path, *args: str) -> str:
    """Run a git command in repo and return its stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def commit(repo: Path, name: str) -> str:
    """Create a commit touching a file named after the commit and return its id."""
    (repo / f"{name}.txt").write_text(name)
    git(repo, "add", ".")
    git(repo, "commit", "-m", name)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def temp_git_repo(tmp_path):
    """Create a temporary git repository with one commit on 'main'."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init")
    git(repo, "config", "user.email", "test@test.com")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "commit.gpgsign", "false")
    # Create initial commit so we can create branches
    (repo / "README.md").write_text("# Test")
    git(repo, "add", ".")
    git(repo, "commit", "-m", "Initial commit")
    # Rename default branch to 'main' if needed
    git(repo, "branch", "-M", "main")
    return repo


@pytest.fixture
def repo_with_origin(temp_git_repo, tmp_path):
    """A repository whose 'main' is pushed to a bare 'origin' remote."""
    remote = tmp_path / "origin.git"
    subprocess.run(["git", "init", "--bare", str(remote)], check=True, capture_output=True)
    git(temp_git_repo, "remote", "add", "origin", str(remote))
    git(temp_git_repo, "push", "-u", "origin", "main")
    return temp_git_repo
