"""
Dev Agent GitHub Sync

Reconciles local goals with GitHub issues:
- pull: open issues under an open "Todo" milestone become goals
- push: goal status becomes issue state plus a status milestone
- check_pull_request: read-only merged-PR lookup for a goal's branch

Per-item failures are collected in the SyncResult; failures to reach or
authenticate against GitHub are raised.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from dev_agent.aid import AIDGenerator
from dev_agent.exceptions import ConnectError, DevAgentError, SyncItemError
from dev_agent.storage.goals import Goal, GoalRepository, GoalStatus
from dev_agent.sync.base import (
    PullRequestCheck,
    PushResult,
    RemoteIssue,
    RemoteMilestone,
    SyncPhase,
    SyncProgress,
    SyncResult,
)
from dev_agent.sync.github_client import GitHubClient
from dev_agent.validation import ValidationContext, ValidationGate, summarize_results

logger = logging.getLogger(__name__)

TODO_MILESTONE = "todo"

STATUS_TO_STATE: Dict[str, str] = {
    GoalStatus.TODO.value: "open",
    GoalStatus.IN_PROGRESS.value: "open",
    GoalStatus.DONE.value: "closed",
    GoalStatus.ARCHIVED.value: "closed",
}

STATUS_TO_MILESTONE: Dict[str, str] = {
    GoalStatus.TODO.value: "Todo",
    GoalStatus.IN_PROGRESS.value: "In Progress",
    GoalStatus.DONE.value: "Done",
    GoalStatus.ARCHIVED.value: "Archived",
}


def is_todo_issue(issue: RemoteIssue) -> bool:
    """Eligible for import: a real issue under an open milestone titled Todo."""
    if issue.is_pull_request or issue.milestone is None:
        return False
    return (
        issue.milestone.title.strip().lower() == TODO_MILESTONE
        and issue.milestone.state == "open"
    )


def is_completion(previous_status: Optional[str], status: str) -> bool:
    """True when a goal moves from a known non-done status into done."""
    return (
        status == GoalStatus.DONE.value
        and previous_status is not None
        and previous_status != GoalStatus.DONE.value
    )


def completion_comment(goal: Goal, completed_at: Optional[str] = None) -> str:
    timestamp = completed_at or datetime.now(timezone.utc).isoformat()
    return (
        "**Goal completed**: this issue was marked done by Dev Agent.\n\n"
        f"**Goal ID**: {goal.id}\n"
        f"**Completed at**: {timestamp}"
    )


class GitHubSyncEngine:
    """Pulls Todo issues into goals and pushes goal status back."""

    def __init__(
        self,
        client: GitHubClient,
        repository: GoalRepository,
        generator: Optional[AIDGenerator] = None,
        gate: Optional[ValidationGate] = None,
        max_pages: int = 10,
        per_page: int = 100
    ):
        """Initialize the engine.

        Args:
            client: GitHub client bound to the tracked repository
            repository: Goal persistence
            generator: AID generator for new goals (default: a fresh one)
            gate: Optional gate; new goals failing an error rule are not created
            max_pages: Ceiling on issue pages fetched per pull
            per_page: Issues per page
        """
        self.client = client
        self.repository = repository
        self.generator = generator or AIDGenerator()
        self.gate = gate
        self.max_pages = max_pages
        self.per_page = per_page
        self.username: Optional[str] = None
        self.progress = SyncProgress()

    def initialize(self) -> str:
        """Verify the token and repository access.

        Returns:
            The authenticated login

        Raises:
            CredentialError: On 401/403
            ConnectError: If GitHub or the repository cannot be reached
        """
        try:
            user = self.client.get_authenticated_user() or {}
            self.client.get_repository()
        except ConnectError:
            raise
        except DevAgentError as e:
            raise ConnectError(
                f"Cannot access {self.client.owner}/{self.client.repo}",
                target="the GitHub repository",
                details=str(e),
            ) from e

        self.username = user.get("login", "user")
        logger.info("Connected to GitHub as @%s", self.username)
        return self.username

    # ========== Pull ==========

    def fetch_todo_issues(self) -> List[RemoteIssue]:
        """Open issues under an open "Todo" milestone, most recently updated first."""
        self.progress.enter(SyncPhase.FETCHING)
        fetched: List[RemoteIssue] = []
        for page in self.client.iter_issue_pages(max_pages=self.max_pages, per_page=self.per_page):
            fetched.extend(page)
            self.progress.update(len(fetched))

        self.progress.enter(SyncPhase.FILTERING, total=len(fetched))
        eligible = [issue for issue in fetched if is_todo_issue(issue)]
        logger.info("Found %d Todo issue(s) out of %d fetched", len(eligible), len(fetched))
        return eligible

    def pull(self, progress_callback: Optional[Callable[[int, int, str], None]] = None) -> SyncResult:
        """Reconcile Todo issues into goals by issue number.

        Unknown issues become new ``todo`` goals; known ones get their
        title and description refreshed when they differ. A failing issue
        is recorded and the batch continues.
        """
        self.progress = SyncProgress(callback=progress_callback)
        result = SyncResult()

        issues = self.fetch_todo_issues()

        self.progress.enter(SyncPhase.RECONCILING, total=len(issues))
        for issue in issues:
            try:
                self._reconcile_issue(issue, result)
            except Exception as e:
                error = SyncItemError(
                    f"Failed to sync issue #{issue.number}: {e}",
                    item=f"#{issue.number}",
                )
                logger.warning(error.message)
                result.errors.append(error)
            self.progress.increment()

        self.progress.enter(SyncPhase.REPORTING, total=len(issues))
        logger.info("Pull finished: %s", result.message)
        self.progress.update(len(issues), SyncPhase.IDLE)
        return result

    def _reconcile_issue(self, issue: RemoteIssue, result: SyncResult) -> None:
        existing = self.repository.find_by_issue_id(issue.number)

        if existing is not None:
            changes = {}
            if existing.title != issue.title:
                changes["title"] = issue.title
            if (existing.description or None) != issue.description:
                changes["description"] = issue.description

            if changes:
                self.repository.update(existing.id, **changes)
                result.updated += 1
                logger.info("Updated goal %s from issue #%d", existing.id, issue.number)
            return

        goal = Goal(
            id=self.generator.generate_goal_id(self.repository.is_id_available),
            title=issue.title,
            status=GoalStatus.TODO.value,
            description=issue.description,
            github_issue_id=issue.number,
        )

        if self.gate is not None:
            context = ValidationContext(goals=self.repository.list())
            summary = summarize_results(self.gate.evaluate_creation(goal, context))
            if not summary.valid:
                reasons = "; ".join(r.message for r in summary.errors)
                result.skipped += 1
                result.errors.append(SyncItemError(
                    f"Issue #{issue.number} rejected: {reasons}",
                    item=f"#{issue.number}",
                ))
                logger.warning("Issue #%d rejected by validation: %s", issue.number, reasons)
                return

        self.repository.create(goal)
        result.created += 1
        logger.info("Created goal %s from issue #%d", goal.id, issue.number)

    # ========== Push ==========

    def find_or_create_milestone(self, title: str) -> Tuple[RemoteMilestone, bool]:
        """Find a milestone by exact title, creating it when missing.

        Returns:
            (milestone, created)
        """
        for milestone in self.client.list_milestones(state="all"):
            if milestone.title == title:
                return milestone, False
        return self.client.create_milestone(title, description=f"Goals in status '{title}'"), True

    def push(self, goal: Goal, previous_status: Optional[str] = None) -> PushResult:
        """Mirror a goal's status onto its issue.

        The completion comment is posted only when ``previous_status`` shows
        the goal has just moved into done. Without it the push only syncs
        state and milestone, so repeated pushes never re-comment.

        Raises:
            CredentialError / TrackerError / NetworkError: On tracker failure
        """
        if goal.github_issue_id is None:
            return PushResult(goal_id=goal.id, skipped=True, reason="Goal has no linked issue")

        state = STATUS_TO_STATE.get(goal.status)
        milestone_title = STATUS_TO_MILESTONE.get(goal.status)
        if state is None or milestone_title is None:
            return PushResult(goal_id=goal.id, skipped=True, reason=f"Unknown status '{goal.status}'")

        milestone, created = self.find_or_create_milestone(milestone_title)
        self.client.update_issue(goal.github_issue_id, state=state, milestone=milestone.number)
        logger.info(
            "Issue #%d set to %s with milestone '%s'", goal.github_issue_id, state, milestone.title
        )

        commented = False
        if is_completion(previous_status, goal.status):
            self.client.create_comment(goal.github_issue_id, completion_comment(goal, goal.completed_at))
            commented = True
            logger.info("Added completion comment to issue #%d", goal.github_issue_id)

        return PushResult(
            goal_id=goal.id,
            issue_number=goal.github_issue_id,
            state=state,
            milestone=milestone.title,
            milestone_created=created,
            commented=commented,
        )

    def push_many(self, goals: Iterable[Goal]) -> SyncResult:
        """Push several goals' current state; failures are collected per goal.

        No completion comments are posted here.
        """
        result = SyncResult()
        for goal in goals:
            try:
                pushed = self.push(goal)
            except DevAgentError as e:
                result.errors.append(SyncItemError(
                    f"Failed to push goal {goal.id}: {e.message}",
                    item=goal.id,
                ))
                continue
            if pushed.skipped:
                result.skipped += 1
            else:
                result.updated += 1
        return result

    # ========== Pull requests ==========

    def check_pull_request(self, goal: Goal) -> PullRequestCheck:
        """Look for a merged pull request from the goal's branch. Never writes."""
        if not goal.branch_name or goal.status == GoalStatus.DONE.value:
            return PullRequestCheck.none()

        head = f"{self.client.owner}:{goal.branch_name}"
        for pull in self.client.list_pull_requests(head=head, state="all"):
            if pull.merged_at:
                logger.info("Pull request #%d for %s is merged", pull.number, goal.branch_name)
                return PullRequestCheck.from_pull_request(pull)
        return PullRequestCheck.none()
