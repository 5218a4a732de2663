"""Helpers shared by the unit tests to build throwaway git repositories."""

import shutil
from pathlib import Path

from version_mirror.utils.git import run_git

TEST_IDENTITY = ["-c", "user.name=Test User", "-c", "user.email=test@example.com", "-c", "commit.gpgsign=false", "-c", "tag.gpgsign=false"]


def git(cwd: Path, *args: str) -> str:
    """Run git in cwd with a fixed test identity and return stdout."""
    return run_git([*TEST_IDENTITY, *args], cwd=cwd).stdout


def write_tree(root: Path, files: dict[str, str]) -> None:
    """Write files (relative path -> content) below root."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def add_upstream_branch(root: Path, branch: str, files: dict[str, str]) -> None:
    """Create branch as an unrelated root commit containing exactly files."""
    git(root, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
    (root / ".git" / "index").unlink(missing_ok=True)
    for entry in root.iterdir():
        if entry.name == ".git":
            continue
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()
    write_tree(root, files)
    git(root, "add", "--all")
    git(root, "commit", "--quiet", "-m", f"Release {branch}")


def make_upstream(root: Path, branches: dict[str, dict[str, str]]) -> str:
    """Create an upstream repository with one branch per version and return its URL."""
    root.mkdir(parents=True)
    git(root, "init", "--quiet")
    for branch, files in branches.items():
        add_upstream_branch(root, branch, files)
    return root.as_uri()
