"""
Dev Agent Exceptions

Custom exception types with remediation hints. Fatal conditions are raised
and propagate to the caller; per-item sync failures are collected as
SyncItemError instances inside a SyncResult.
"""

from typing import Optional


class DevAgentError(Exception):
    """Base exception for all Dev Agent errors."""

    def __init__(
        self,
        message: str,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        """Initialize the error.

        Args:
            message: Human-readable error message
            remediation: Suggested fix for the user
            details: Technical details for debugging
        """
        super().__init__(message)
        self.message = message
        self.remediation = remediation
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.remediation:
            parts.append(f"To fix: {self.remediation}")
        return "\n".join(parts)


class ConfigurationError(DevAgentError):
    """A required setting is missing or malformed."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.config_key = config_key
        if not remediation and config_key:
            remediation = f"Set '{config_key}' in config.yaml, .env or with: dev-agent config set {config_key} <value>"
        super().__init__(message, remediation, details)


class ConnectError(DevAgentError):
    """The store or the tracker could not be reached during initialization."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.target = target
        if not remediation and target:
            remediation = f"Check that {target} is reachable and retry the initialization"
        super().__init__(message, remediation, details)


class CredentialError(ConnectError):
    """Authentication or repository access was refused."""

    def __init__(
        self,
        message: str,
        credential_type: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.credential_type = credential_type
        if not remediation and credential_type:
            remediation = f"Verify your {credential_type} credentials are correct and have required permissions"
        super().__init__(message, target=credential_type, remediation=remediation, details=details)


class NetworkError(ConnectError):
    """Network-related errors (timeouts, connection resets)."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.endpoint = endpoint
        if not remediation:
            remediation = "Check your internet connection and try again. If the issue persists, the service may be temporarily unavailable."
        super().__init__(message, target=endpoint, remediation=remediation, details=details)


class TrackerError(DevAgentError):
    """The tracker answered with an unexpected status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message, remediation, details)


class MigrationError(DevAgentError):
    """A schema migration failed; startup must halt."""

    def __init__(
        self,
        message: str,
        version: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.version = version
        if not remediation and version:
            remediation = (
                f"Migration {version} was rolled back and not recorded. "
                "Fix the schema problem and run 'dev-agent init' again"
            )
        super().__init__(message, remediation, details)


class SyncItemError(DevAgentError):
    """A single issue or goal failed during a sync batch."""

    def __init__(
        self,
        message: str,
        item: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.item = item
        super().__init__(message, remediation, details)


class RetryExhaustedError(DevAgentError):
    """No unique identifier could be minted within the retry budget."""

    def __init__(
        self,
        message: str,
        prefix: Optional[str] = None,
        attempts: int = 0,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.prefix = prefix
        self.attempts = attempts
        if not remediation:
            remediation = "Increase max_retries or id_length in the AID configuration"
        super().__init__(message, remediation, details)


class ValidationError(DevAgentError):
    """Input validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        expected_format: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.field = field
        self.expected_format = expected_format
        if not remediation and field and expected_format:
            remediation = f"The {field} should be in format: {expected_format}"
        super().__init__(message, remediation, details)


# Error code mapping for CLI exit codes; subclasses come before their bases
ERROR_CODES = {
    ConfigurationError: 10,
    CredentialError: 11,
    NetworkError: 13,
    ConnectError: 12,
    TrackerError: 14,
    MigrationError: 15,
    SyncItemError: 16,
    RetryExhaustedError: 17,
    ValidationError: 18,
    DevAgentError: 1,
}


def get_error_code(error: Exception) -> int:
    """Get the exit code for an error type."""
    for error_type, code in ERROR_CODES.items():
        if isinstance(error, error_type):
            return code
    return 1
