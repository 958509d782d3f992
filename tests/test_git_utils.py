"""Tests for git working-copy helpers."""

import subprocess
from unittest.mock import MagicMock, patch


class TestGitUtils:
    """Test git helpers degrade gracefully."""

    def test_outside_repository(self, tmp_path):
        """Test a plain directory yields no branch and unknown state."""
        from dev_agent.git_utils import get_current_branch, has_uncommitted_changes

        assert get_current_branch(tmp_path) is None
        assert has_uncommitted_changes(tmp_path) is None

    def test_git_missing(self):
        """Test missing git binary."""
        from dev_agent.git_utils import get_current_branch, is_git_available

        with patch("dev_agent.git_utils.subprocess.run", side_effect=FileNotFoundError):
            assert get_current_branch() is None
            assert is_git_available() is False

    def test_branch_and_dirty_state(self):
        """Test parsing of git output."""
        from dev_agent.git_utils import get_current_branch, has_uncommitted_changes

        branch = MagicMock(returncode=0, stdout="feature/login\n")
        dirty = MagicMock(returncode=0, stdout=" M src/app.py\n")
        with patch("dev_agent.git_utils.subprocess.run", side_effect=[branch, dirty]):
            assert get_current_branch() == "feature/login"
            assert has_uncommitted_changes() is True

    def test_detached_head(self):
        from dev_agent.git_utils import get_current_branch

        with patch("dev_agent.git_utils.subprocess.run", return_value=MagicMock(returncode=0, stdout="HEAD\n")):
            assert get_current_branch() is None

    def test_timeout(self):
        from dev_agent.git_utils import has_uncommitted_changes

        with patch("dev_agent.git_utils.subprocess.run", side_effect=subprocess.TimeoutExpired("git", 5)):
            assert has_uncommitted_changes() is None
