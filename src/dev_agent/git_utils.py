"""
Git utilities for reading working-copy state.

Used to build the validation context. Every helper falls back gracefully
when git is missing or the directory is not a repository.
"""

import subprocess
from pathlib import Path
from typing import List, Optional


def _run_git(args: List[str], repo_path: Optional[Path] = None) -> Optional[str]:
    """Run a git command and return its stripped stdout, or None on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=5,
            cwd=str(repo_path) if repo_path else None,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        # git not installed, not in PATH, or timed out
        pass
    return None


def get_current_branch(repo_path: Optional[Path] = None) -> Optional[str]:
    """Get the checked-out branch name.

    Returns:
        Branch name, or None when detached, outside a repository, or git is unavailable
    """
    branch = _run_git(["rev-parse", "--abbrev-ref", "HEAD"], repo_path)
    if not branch or branch == "HEAD":
        return None
    return branch


def has_uncommitted_changes(repo_path: Optional[Path] = None) -> Optional[bool]:
    """Check for staged, unstaged or untracked changes.

    Returns:
        True/False, or None if the state could not be read
    """
    status = _run_git(["status", "--porcelain"], repo_path)
    if status is None:
        return None
    return bool(status)


def is_git_available() -> bool:
    """Check if git is available on the system."""
    return _run_git(["--version"]) is not None
