"""
Goal validation: admission rules and the gate that runs them.
"""

from dev_agent.validation.gate import ValidationGate, build_context
from dev_agent.validation.results import (
    Severity,
    ValidationContext,
    ValidationResult,
    ValidationSummary,
    summarize_results,
)
from dev_agent.validation.rules import DEFAULT_RULES, STATUS_TRANSITIONS, ValidationRule

__all__ = [
    "DEFAULT_RULES",
    "STATUS_TRANSITIONS",
    "Severity",
    "ValidationContext",
    "ValidationGate",
    "ValidationResult",
    "ValidationRule",
    "ValidationSummary",
    "build_context",
    "summarize_results",
]
