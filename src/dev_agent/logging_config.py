"""
Dev Agent Logging Configuration

Configurable logging with debug mode support and secret masking.
"""

import os
import logging
import re
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional


# Check for debug mode
DEBUG_MODE = os.environ.get("DEV_AGENT_DEBUG", "").lower() in ("1", "true", "yes")

# Key names that indicate a secret value
SECRET_PATTERNS = [
    "token", "password", "secret", "api_key", "apikey",
    "credential", "authorization", "bearer",
]

# Regex patterns for common secret formats
SECRET_REGEXES = [
    r'ghp_[a-zA-Z0-9]{36,}',  # GitHub PAT
    r'gho_[a-zA-Z0-9]{36,}',  # GitHub OAuth
    r'ghs_[a-zA-Z0-9]{36,}',  # GitHub App installation
    r'github_pat_[a-zA-Z0-9_]{22,}',  # GitHub fine-grained PAT
    r'sk-[a-zA-Z0-9\-]{20,}',  # LLM provider keys
]


def mask_secrets(text: str, mask: str = "********") -> str:
    """Mask secrets in a string.

    Args:
        text: The text that may contain secrets
        mask: The string to replace secrets with

    Returns:
        Text with secrets masked
    """
    if not text:
        return text

    result = text

    # Specific formats first so key=value masking cannot split a token
    for regex in SECRET_REGEXES:
        result = re.sub(regex, mask, result)

    for pattern in SECRET_PATTERNS:
        # Match pattern="value" or pattern=value
        regex = rf'({pattern}["\']?\s*[=:]\s*["\']?)([^"\'\s]+)(["\']?)'
        result = re.sub(regex, rf'\g<1>{mask}\g<3>', result, flags=re.IGNORECASE)

    return result


def is_secret_key(key: str) -> bool:
    """Check if a configuration key name holds a secret value."""
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in SECRET_PATTERNS)


class SecretMaskingFormatter(logging.Formatter):
    """Formatter that masks secrets in log messages."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return mask_secrets(message)


def _level_from_env() -> Optional[int]:
    name = os.environ.get("DEV_AGENT_LOG_LEVEL", "").upper()
    if name in ("DEBUG", "INFO", "WARNING", "ERROR"):
        return getattr(logging, name)
    return None


def setup_logging(
    level: Optional[int] = None,
    log_file: Optional[Path] = None,
    quiet: bool = False
) -> logging.Logger:
    """Set up logging configuration.

    Args:
        level: Logging level (default: DEBUG if DEV_AGENT_DEBUG, else
            DEV_AGENT_LOG_LEVEL, else INFO)
        log_file: Optional path to log file
        quiet: If True, suppress console output

    Returns:
        Configured logger
    """
    if level is None:
        level = logging.DEBUG if DEBUG_MODE else (_level_from_env() or logging.INFO)

    logger = logging.getLogger("dev_agent")
    # The file handler records DEBUG even when the console is quieter
    logger.setLevel(logging.DEBUG if log_file else level)

    # Clear existing handlers
    logger.handlers.clear()

    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)

        if DEBUG_MODE:
            console_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        else:
            console_format = "%(message)s"

        console_handler.setFormatter(SecretMaskingFormatter(console_format))
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
        file_handler.setFormatter(SecretMaskingFormatter(file_format))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "dev_agent") -> logging.Logger:
    """Get a logger under the dev_agent hierarchy.

    Args:
        name: Logger name (will be prefixed with 'dev_agent.')

    Returns:
        Configured logger
    """
    if not name.startswith("dev_agent"):
        name = f"dev_agent.{name}"

    logger = logging.getLogger(name)

    # Ensure parent logger is configured
    parent = logging.getLogger("dev_agent")
    if not parent.handlers:
        setup_logging()

    return logger


def get_log_path(project_root: Path) -> Path:
    """Get the default log file path."""
    return project_root / "logs" / f"dev-agent-{datetime.now().strftime('%Y-%m-%d')}.log"


# Environment variable documentation
ENV_VARS = {
    "DEV_AGENT_DEBUG": {
        "description": "Enable debug mode with verbose logging",
        "values": ["1", "true", "yes"],
        "default": "false"
    },
    "DEV_AGENT_LOG_LEVEL": {
        "description": "Set logging level",
        "values": ["DEBUG", "INFO", "WARNING", "ERROR"],
        "default": "INFO"
    },
    "DEV_AGENT_DB_PATH": {
        "description": "Path of the SQLite store",
        "default": ":memory:"
    },
    "GITHUB_TOKEN": {
        "description": "GitHub token with repository read/write scope",
        "default": ""
    },
}


def format_env_help() -> str:
    """Render ENV_VARS as a help epilog block."""
    lines = ["\b", "Environment variables:"]
    for name, info in ENV_VARS.items():
        lines.append(f"  {name:<20} {info['description']}")
    return "\n".join(lines)
