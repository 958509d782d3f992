"""
Dev Agent Validation Gate

Runs the admission rules against a candidate goal. The gate only reports;
callers decide whether to persist.

Usage:
    from dev_agent.validation import ValidationGate, build_context, summarize_results

    gate = ValidationGate()
    results = gate.evaluate(candidate, build_context(repository))
    if summarize_results(results).valid:
        repository.create(candidate)
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from dev_agent.git_utils import get_current_branch, has_uncommitted_changes
from dev_agent.storage.goals import Goal
from dev_agent.validation.results import Severity, ValidationContext, ValidationResult
from dev_agent.validation.rules import DEFAULT_RULES, ValidationRule

logger = logging.getLogger(__name__)


class ValidationGate:
    """Evaluates goals against an ordered rule list."""

    def __init__(self, rules: Optional[Sequence[ValidationRule]] = None):
        self.rules: List[ValidationRule] = list(rules) if rules is not None else list(DEFAULT_RULES)

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    def evaluate(
        self,
        goal: Goal,
        context: ValidationContext,
        strict: bool = False
    ) -> List[ValidationResult]:
        """Run every rule in order.

        Args:
            goal: Candidate goal
            context: Stored goals and working-copy state
            strict: Stop after the first failing error-severity rule

        Returns:
            One result per rule run. A rule that raises yields an error
            result naming the rule instead of propagating.
        """
        results = []
        for rule in self.rules:
            try:
                result = rule(goal, context)
            except Exception as e:
                logger.exception("Validation rule %s raised", rule.name)
                result = ValidationResult(
                    rule=rule.name,
                    valid=False,
                    severity=Severity.ERROR,
                    message=f"Validation rule {rule.name} failed: {e}",
                )

            results.append(result)
            if strict and result.is_blocking:
                break

        blocking = [r.rule for r in results if r.is_blocking]
        if blocking:
            logger.debug("Goal %s rejected by: %s", goal.id, ", ".join(blocking))
        return results

    def evaluate_creation(
        self,
        goal: Goal,
        context: ValidationContext,
        strict: bool = False
    ) -> List[ValidationResult]:
        """Evaluate a goal that is not stored yet."""
        return self.evaluate(goal, context, strict)

    def evaluate_status_change(
        self,
        goal: Goal,
        new_status: str,
        context: ValidationContext,
        branch_name: Optional[str] = None,
        strict: bool = False
    ) -> List[ValidationResult]:
        """Evaluate ``goal`` moved to ``new_status``.

        ``goal`` is the stored version; the context must contain it for the
        transition rule to see the change.
        """
        changes = {"status": new_status}
        if branch_name is not None:
            changes["branch_name"] = branch_name
        candidate = goal.model_copy(update=changes)

        if context.stored(goal.id) is None:
            context = ValidationContext(
                goals=[*context.goals, goal],
                current_branch=context.current_branch,
                has_uncommitted_changes=context.has_uncommitted_changes,
            )
        return self.evaluate(candidate, context, strict)


def build_context(repository, repo_path: Optional[Path] = None) -> ValidationContext:
    """Snapshot stored goals and working-copy state for evaluation."""
    return ValidationContext(
        goals=repository.list(),
        current_branch=get_current_branch(repo_path),
        has_uncommitted_changes=has_uncommitted_changes(repo_path),
    )
