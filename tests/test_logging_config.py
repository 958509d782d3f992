"""Tests for Dev Agent logging configuration."""

import logging


class TestSecretMasking:
    """Test secret masking in log output."""

    def test_masks_github_tokens(self):
        """Test GitHub token formats are masked."""
        from dev_agent.logging_config import mask_secrets

        token = "ghp_" + "x" * 36
        masked = mask_secrets(f"Using {token} for octo/demo")
        assert token not in masked
        assert "octo/demo" in masked

    def test_masks_key_value_pairs(self):
        """Test key=value secrets are masked."""
        from dev_agent.logging_config import mask_secrets

        masked = mask_secrets('token="abc123" owner=octo')
        assert "abc123" not in masked
        assert "owner=octo" in masked

    def test_empty_text(self):
        from dev_agent.logging_config import mask_secrets

        assert mask_secrets("") == ""

    def test_is_secret_key(self):
        from dev_agent.logging_config import is_secret_key

        assert is_secret_key("github.token") is True
        assert is_secret_key("github.owner") is False

    def test_formatter_masks(self):
        """Test SecretMaskingFormatter output."""
        from dev_agent.logging_config import SecretMaskingFormatter

        record = logging.LogRecord("dev_agent", logging.INFO, __file__, 1,
                                   "password=%s", ("hunter2",), None)
        assert "hunter2" not in SecretMaskingFormatter("%(message)s").format(record)


class TestSetupLogging:
    """Test logger setup."""

    def test_setup_logging_level_and_file(self, tmp_path):
        """Test file handler and explicit level."""
        from dev_agent.logging_config import setup_logging

        log_file = tmp_path / "logs" / "agent.log"
        logger = setup_logging(level=logging.WARNING, log_file=log_file, quiet=True)

        assert logger.name == "dev_agent"
        assert logger.level == logging.DEBUG
        assert logger.handlers[0].level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert log_file.parent.exists()

    def test_console_level_without_file(self):
        from dev_agent.logging_config import setup_logging

        logger = setup_logging(level=logging.WARNING)
        assert logger.level == logging.WARNING
        assert logger.handlers[0].level == logging.WARNING

    def test_get_logger_prefix(self):
        """Test names are placed under the dev_agent hierarchy."""
        from dev_agent.logging_config import get_logger

        assert get_logger("sync").name == "dev_agent.sync"
        assert get_logger("dev_agent.storage").name == "dev_agent.storage"

    def test_log_path(self, tmp_path):
        from dev_agent.logging_config import get_log_path

        path = get_log_path(tmp_path)
        assert path.parent == tmp_path / "logs"
        assert path.name.startswith("dev-agent-")

    def test_env_help_lists_variables(self):
        from dev_agent.logging_config import ENV_VARS, format_env_help

        text = format_env_help()
        assert all(name in text for name in ENV_VARS)
