"""
Validation result types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from dev_agent.storage.goals import Goal


class Severity(str, Enum):
    """How much a failed rule matters."""

    ERROR = "error"  # Blocks the transition
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationResult:
    """Outcome of one rule against one candidate goal."""

    rule: str
    valid: bool
    severity: Severity
    message: str = ""
    suggestion: Optional[str] = None

    @property
    def is_blocking(self) -> bool:
        return not self.valid and self.severity == Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "rule": self.rule,
            "valid": self.valid,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result


@dataclass
class ValidationContext:
    """Read-only view of the world a rule may consult."""

    goals: List[Goal] = field(default_factory=list)
    current_branch: Optional[str] = None
    has_uncommitted_changes: Optional[bool] = None

    def stored(self, goal_id: str) -> Optional[Goal]:
        """The stored version of a goal, if the context holds it."""
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        return None

    def others(self, goal_id: str) -> List[Goal]:
        return [goal for goal in self.goals if goal.id != goal_id]


@dataclass
class ValidationSummary:
    """Results grouped by severity."""

    valid: bool
    errors: List[ValidationResult] = field(default_factory=list)
    warnings: List[ValidationResult] = field(default_factory=list)
    info: List[ValidationResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [r.to_dict() for r in self.errors],
            "warnings": [r.to_dict() for r in self.warnings],
            "info": [r.to_dict() for r in self.info],
        }


def summarize_results(results: List[ValidationResult]) -> ValidationSummary:
    """Group results; the batch is valid when no error-severity rule failed."""
    errors = [r for r in results if r.is_blocking]
    warnings = [r for r in results if r.severity == Severity.WARNING]
    info = [r for r in results if r.severity == Severity.INFO]
    return ValidationSummary(valid=not errors, errors=errors, warnings=warnings, info=info)
