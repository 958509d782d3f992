"""
Dev Agent Setting Validators

Format checks for configuration values. Each validator returns a
(is_valid, message) tuple and never raises.
"""

import re
from typing import Tuple


SUPPORTED_DATABASE_TYPES = ("sqlite",)


def validate_github_token(token: str) -> Tuple[bool, str]:
    """Validate GitHub personal access token format.

    Args:
        token: The PAT to validate

    Returns:
        Tuple of (is_valid, message)
    """
    if not token:
        return False, "Token is required"

    # GitHub tokens can be:
    # - Classic: ghp_xxxx
    # - Fine-grained: github_pat_xxxx
    # - OAuth / app installation: gho_xxxx, ghs_xxxx
    if token.startswith(("ghp_", "gho_", "ghs_", "github_pat_")):
        if len(token) < 20:
            return False, "Token appears too short"
        return True, "Valid GitHub token format"

    # Legacy tokens don't have prefix
    if len(token) == 40 and re.match(r'^[a-f0-9]+$', token):
        return True, "Valid GitHub token format (classic)"

    return False, "GitHub tokens should start with 'ghp_', 'gho_', 'ghs_' or 'github_pat_'"


def validate_github_owner(owner: str) -> Tuple[bool, str]:
    """Validate a GitHub user or organization name."""
    if not owner:
        return False, "Repository owner is required"

    if len(owner) > 39:
        return False, "Owner name is longer than 39 characters"

    if not re.match(r'^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9]))*$', owner):
        return False, "Owner may only contain letters, digits and single hyphens"

    return True, "Valid owner name"


def validate_github_repo(repo: str) -> Tuple[bool, str]:
    """Validate a GitHub repository name."""
    if not repo:
        return False, "Repository name is required"

    if repo in (".", ".."):
        return False, "Invalid repository name"

    if not re.match(r'^[A-Za-z0-9._-]{1,100}$', repo):
        return False, "Repository name may only contain letters, digits, '.', '_' and '-'"

    return True, "Valid repository name"


def validate_database_type(db_type: str) -> Tuple[bool, str]:
    """Validate the configured store type."""
    if not db_type:
        return False, "Database type is required"

    if db_type.lower() not in SUPPORTED_DATABASE_TYPES:
        return False, f"Unsupported database type '{db_type}'. Supported: {', '.join(SUPPORTED_DATABASE_TYPES)}"

    return True, "Valid database type"


def validate_database_path(path: str) -> Tuple[bool, str]:
    """Validate a store path (file path or ':memory:')."""
    if not path or not path.strip():
        return False, "Database path is required"

    if path.startswith(":memory:"):
        return True, "Ephemeral in-memory store"

    if path.endswith(("/", "\\")):
        return False, "Database path points to a directory"

    return True, "Valid database path"


# Map of setting keys to validators
SETTING_VALIDATORS = {
    "github.token": validate_github_token,
    "github.owner": validate_github_owner,
    "github.repo": validate_github_repo,
    "database.type": validate_database_type,
    "database.path": validate_database_path,
}


def validate_setting(key: str, value: str) -> Tuple[bool, str]:
    """Validate a setting by its dotted key.

    Args:
        key: The setting key (e.g., 'github.owner')
        value: The setting value

    Returns:
        Tuple of (is_valid, message)
    """
    validator = SETTING_VALIDATORS.get(key)
    if validator:
        return validator(value)
    return True, "No specific validation for this setting"
