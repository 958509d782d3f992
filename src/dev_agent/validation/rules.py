"""
Goal admission rules.

Each rule is a pure function ``(goal, context) -> ValidationResult``. Rules
never touch the store or the network and never mutate their inputs.
"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List

from dev_agent.storage.goals import Goal, GoalStatus
from dev_agent.validation.results import Severity, ValidationContext, ValidationResult

RuleCheck = Callable[[Goal, ValidationContext], ValidationResult]

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
IN_PROGRESS_LIMIT = 3
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_CRITERIA_THRESHOLD = 50

# Allowed status changes; archived is terminal
STATUS_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    GoalStatus.TODO.value: frozenset({GoalStatus.IN_PROGRESS.value}),
    GoalStatus.IN_PROGRESS.value: frozenset({GoalStatus.DONE.value, GoalStatus.TODO.value}),
    GoalStatus.DONE.value: frozenset({GoalStatus.ARCHIVED.value}),
    GoalStatus.ARCHIVED.value: frozenset(),
}

ACCEPTANCE_MARKERS = ("- [ ]", "* [ ]", "1.")
ACCEPTANCE_WORDS = ("acceptance criteria", "should")


@dataclass(frozen=True)
class ValidationRule:
    """A named rule."""

    name: str
    description: str
    check: RuleCheck

    def __call__(self, goal: Goal, context: ValidationContext) -> ValidationResult:
        return self.check(goal, context)


def check_unique_title(goal: Goal, context: ValidationContext) -> ValidationResult:
    title = (goal.title or "").strip().lower()
    duplicate = next(
        (g for g in context.others(goal.id) if (g.title or "").strip().lower() == title),
        None,
    )
    if title and duplicate is not None:
        return ValidationResult(
            rule="unique-title",
            valid=False,
            severity=Severity.ERROR,
            message=f'Goal title "{goal.title}" already exists',
            suggestion="Use a unique title or check existing goals",
        )
    return ValidationResult("unique-title", True, Severity.INFO, "Goal title is unique")


def check_title_format(goal: Goal, context: ValidationContext) -> ValidationResult:
    title = goal.title or ""
    if not title.strip():
        return ValidationResult(
            rule="title-format",
            valid=False,
            severity=Severity.ERROR,
            message="Goal title cannot be empty",
            suggestion="Provide a descriptive title for the goal",
        )

    if len(title) < TITLE_MIN_LENGTH:
        return ValidationResult(
            rule="title-format",
            valid=False,
            severity=Severity.WARNING,
            message="Goal title is too short",
            suggestion=f"Use a more descriptive title (at least {TITLE_MIN_LENGTH} characters)",
        )

    if len(title) > TITLE_MAX_LENGTH:
        return ValidationResult(
            rule="title-format",
            valid=False,
            severity=Severity.WARNING,
            message="Goal title is too long",
            suggestion=f"Keep title concise (under {TITLE_MAX_LENGTH} characters)",
        )

    return ValidationResult("title-format", True, Severity.INFO, "Goal title format is valid")


def check_status_transition(goal: Goal, context: ValidationContext) -> ValidationResult:
    if goal.status not in GoalStatus.values():
        return ValidationResult(
            rule="status-transition",
            valid=False,
            severity=Severity.ERROR,
            message=f"Invalid goal status: {goal.status}",
            suggestion=f"Use one of: {', '.join(GoalStatus.values())}",
        )

    stored = context.stored(goal.id)
    if stored is not None and stored.status != goal.status:
        allowed = STATUS_TRANSITIONS.get(stored.status, frozenset())
        if goal.status not in allowed:
            if allowed:
                suggestion = f"From '{stored.status}' a goal can move to: {', '.join(sorted(allowed))}"
            else:
                suggestion = f"'{stored.status}' is a terminal status"
            return ValidationResult(
                rule="status-transition",
                valid=False,
                severity=Severity.ERROR,
                message=f"Cannot change status from '{stored.status}' to '{goal.status}'",
                suggestion=suggestion,
            )

    return ValidationResult("status-transition", True, Severity.INFO, "Goal status is valid")


def check_branch_consistency(goal: Goal, context: ValidationContext) -> ValidationResult:
    if goal.branch_name and goal.status == GoalStatus.TODO.value:
        return ValidationResult(
            rule="branch-consistency",
            valid=False,
            severity=Severity.WARNING,
            message="Goal with branch should not be in 'todo' status",
            suggestion="Update status to 'in_progress' or remove branch name",
        )

    if not goal.branch_name and goal.status == GoalStatus.IN_PROGRESS.value:
        return ValidationResult(
            rule="branch-consistency",
            valid=False,
            severity=Severity.WARNING,
            message="Goal in progress should have a branch name",
            suggestion="Create a feature branch for this goal",
        )

    return ValidationResult("branch-consistency", True, Severity.INFO, "Branch consistency is valid")


def check_in_progress_limit(goal: Goal, context: ValidationContext) -> ValidationResult:
    if goal.status == GoalStatus.IN_PROGRESS.value:
        others = [g for g in context.others(goal.id) if g.status == GoalStatus.IN_PROGRESS.value]
        # Candidate counts once even if its stored version is already in progress
        if len(others) + 1 > IN_PROGRESS_LIMIT:
            return ValidationResult(
                rule="in-progress-limit",
                valid=False,
                severity=Severity.WARNING,
                message="Too many goals in progress",
                suggestion="Complete or pause some goals before starting new ones",
            )

    return ValidationResult("in-progress-limit", True, Severity.INFO, "In-progress limit is acceptable")


def check_github_consistency(goal: Goal, context: ValidationContext) -> ValidationResult:
    if goal.github_issue_id is not None:
        claimed = [g for g in context.others(goal.id) if g.github_issue_id == goal.github_issue_id]
        if claimed:
            return ValidationResult(
                rule="github-consistency",
                valid=False,
                severity=Severity.ERROR,
                message=f"GitHub issue #{goal.github_issue_id} is already linked to goal {claimed[0].id}",
                suggestion="Each GitHub issue should be linked to only one goal",
            )

    return ValidationResult("github-consistency", True, Severity.INFO, "GitHub link is consistent")


def has_acceptance_criteria(description: str) -> bool:
    lowered = description.lower()
    return any(marker in description for marker in ACCEPTANCE_MARKERS) or any(
        word in lowered for word in ACCEPTANCE_WORDS
    )


def check_description_quality(goal: Goal, context: ValidationContext) -> ValidationResult:
    """Advisory only; always valid."""
    description = (goal.description or "").strip()
    if not description:
        return ValidationResult(
            rule="description-quality",
            valid=True,
            severity=Severity.WARNING,
            message="Goal has no description",
            suggestion="Consider adding a description to clarify the goal requirements",
        )

    if len(description) < DESCRIPTION_MIN_LENGTH:
        return ValidationResult(
            rule="description-quality",
            valid=True,
            severity=Severity.WARNING,
            message="Goal description is very short",
            suggestion="Provide more details about what needs to be accomplished",
        )

    if len(description) > DESCRIPTION_CRITERIA_THRESHOLD and not has_acceptance_criteria(description):
        return ValidationResult(
            rule="description-quality",
            valid=True,
            severity=Severity.INFO,
            message="Goal description lacks clear acceptance criteria",
            suggestion="Consider adding acceptance criteria or a checklist",
        )

    return ValidationResult("description-quality", True, Severity.INFO, "Goal description is adequate")


DEFAULT_RULES: List[ValidationRule] = [
    ValidationRule("unique-title", "Goal titles are unique, ignoring case", check_unique_title),
    ValidationRule("title-format", "Title is present and of reasonable length", check_title_format),
    ValidationRule("status-transition", "Status is known and the change is allowed", check_status_transition),
    ValidationRule("branch-consistency", "Branch is set exactly while in progress", check_branch_consistency),
    ValidationRule("in-progress-limit", f"At most {IN_PROGRESS_LIMIT} goals in progress", check_in_progress_limit),
    ValidationRule("github-consistency", "An issue links to one goal only", check_github_consistency),
    ValidationRule("description-quality", "Description explains the work", check_description_quality),
]
