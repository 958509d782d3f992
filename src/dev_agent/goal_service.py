"""
Dev Agent Goal Workflow

Glue between the gate, the repository and the sync engine: evaluate,
then persist, then optionally push. Holds no state of its own.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dev_agent.aid import AIDGenerator
from dev_agent.exceptions import DevAgentError, ValidationError
from dev_agent.storage.goals import Goal, GoalRepository, GoalStatus
from dev_agent.sync.base import PullRequestCheck, PushResult
from dev_agent.sync.github_sync import GitHubSyncEngine
from dev_agent.validation import (
    ValidationGate,
    ValidationResult,
    ValidationSummary,
    build_context,
    summarize_results,
)

logger = logging.getLogger(__name__)


@dataclass
class GoalOperationResult:
    """What a workflow call did."""
    goal: Optional[Goal]
    results: List[ValidationResult] = field(default_factory=list)
    persisted: bool = False
    push: Optional[PushResult] = None
    push_error: Optional[str] = None

    @property
    def summary(self) -> ValidationSummary:
        return summarize_results(self.results)


class GoalService:
    """Create and transition goals through the validation gate."""

    def __init__(
        self,
        repository: GoalRepository,
        gate: Optional[ValidationGate] = None,
        generator: Optional[AIDGenerator] = None,
        engine: Optional[GitHubSyncEngine] = None,
        repo_path: Optional[Path] = None
    ):
        self.repository = repository
        self.gate = gate or ValidationGate()
        self.generator = generator or AIDGenerator()
        self.engine = engine
        self.repo_path = repo_path

    def create_goal(
        self,
        title: str,
        description: Optional[str] = None,
        github_issue_id: Optional[int] = None,
        strict: bool = False
    ) -> GoalOperationResult:
        """Mint an id, evaluate the new goal and persist it when no error rule fails."""
        goal = Goal(
            id=self.generator.generate_goal_id(self.repository.is_id_available),
            title=title,
            status=GoalStatus.TODO.value,
            description=description,
            github_issue_id=github_issue_id,
        )

        context = build_context(self.repository, self.repo_path)
        results = self.gate.evaluate_creation(goal, context, strict=strict)
        if not summarize_results(results).valid:
            logger.info("Goal '%s' rejected by validation", title)
            return GoalOperationResult(goal=goal, results=results)

        created = self.repository.create(goal)
        logger.info("Created goal %s", created.id)
        return GoalOperationResult(goal=created, results=results, persisted=True)

    def change_status(
        self,
        goal_id: str,
        new_status: str,
        branch_name: Optional[str] = None,
        push: bool = True,
        strict: bool = False
    ) -> GoalOperationResult:
        """Move a goal to ``new_status`` if the gate allows it.

        Re-applying the current status is a no-op: nothing is persisted or
        pushed. A push failure does not undo the local change; it is logged
        and reported in ``push_error``.

        Raises:
            ValidationError: If no goal has this id
        """
        stored = self.repository.find_by_id(goal_id)
        if stored is None:
            raise ValidationError(f"Goal {goal_id} not found", field="goal_id")

        if stored.status == new_status and branch_name in (None, stored.branch_name):
            logger.info("Goal %s is already %s; nothing to change", goal_id, new_status)
            return GoalOperationResult(goal=stored)

        context = build_context(self.repository, self.repo_path)
        results = self.gate.evaluate_status_change(
            stored, new_status, context, branch_name=branch_name, strict=strict
        )
        if not summarize_results(results).valid:
            logger.info("Status change %s -> %s rejected for %s", stored.status, new_status, goal_id)
            return GoalOperationResult(goal=stored, results=results)

        changes = {"status": new_status}
        if branch_name is not None:
            changes["branch_name"] = branch_name
        updated = self.repository.update(goal_id, **changes)
        outcome = GoalOperationResult(goal=updated, results=results, persisted=True)

        if push and self.engine is not None and updated.github_issue_id is not None:
            try:
                outcome.push = self.engine.push(updated, previous_status=stored.status)
            except DevAgentError as e:
                logger.warning("Could not push goal %s to GitHub: %s", goal_id, e.message)
                outcome.push_error = e.message

        return outcome

    def complete_if_merged(self, goal_id: str) -> Optional[GoalOperationResult]:
        """Mark an in-progress goal done once its branch's pull request is merged.

        Returns:
            The status-change outcome, or None when nothing is merged
        """
        if self.engine is None:
            raise ValidationError(
                "GitHub is not configured",
                remediation="Set github.owner, github.repo and github.token",
            )

        goal = self.repository.find_by_id(goal_id)
        if goal is None:
            raise ValidationError(f"Goal {goal_id} not found", field="goal_id")

        check: PullRequestCheck = self.engine.check_pull_request(goal)
        if not check.merged:
            return None

        logger.info("Pull request #%s merged; completing goal %s", check.number, goal_id)
        return self.change_status(goal_id, GoalStatus.DONE.value)
