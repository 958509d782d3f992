"""Tests for GitHub issue/goal reconciliation."""

import pytest

from dev_agent.exceptions import ConnectError, CredentialError, TrackerError
from dev_agent.storage import Goal
from dev_agent.sync import GitHubSyncEngine, RemotePullRequest, SyncPhase
from dev_agent.validation import ValidationGate


@pytest.fixture
def engine(fake_client, repository):
    return GitHubSyncEngine(fake_client, repository)


class TestFetchTodoIssues:
    """Test remote issue filtering."""

    def test_only_open_todo_milestone_issues(self, engine, fake_client):
        todo = fake_client.add_milestone("Todo")
        closed_todo = fake_client.add_milestone("TODO", state="closed")
        doing = fake_client.add_milestone("In Progress")

        fake_client.add_issue(1, "Eligible", milestone=todo)
        fake_client.add_issue(2, "No milestone")
        fake_client.add_issue(3, "Wrong milestone", milestone=doing)
        fake_client.add_issue(4, "Closed milestone", milestone=closed_todo)
        fake_client.add_issue(5, "A pull request", milestone=todo, pull_request=True)

        issues = engine.fetch_todo_issues()
        assert [i.number for i in issues] == [1]

    def test_milestone_title_is_case_insensitive(self, engine, fake_client):
        todo = fake_client.add_milestone("todo")
        fake_client.add_issue(1, "Lowercase milestone", milestone=todo)
        assert len(engine.fetch_todo_issues()) == 1

    def test_page_ceiling_is_passed(self, fake_client, repository):
        engine = GitHubSyncEngine(fake_client, repository, max_pages=4, per_page=50)
        engine.fetch_todo_issues()
        assert fake_client.calls_named("iter_issue_pages") == [("iter_issue_pages", 4, 50)]


class TestPull:
    """Test pull reconciliation."""

    def test_issue_42_scenario(self, engine, fake_client, repository):
        """Create, then no-op, then a title change that keeps id and issue id."""
        todo = fake_client.add_milestone("Todo")
        issue = fake_client.add_issue(42, "Add login", body="Users should log in", milestone=todo)

        first = engine.pull()
        assert (first.created, first.updated) == (1, 0)
        goal = repository.find_by_issue_id(42)
        assert goal.status == "todo"
        assert goal.title == "Add login"
        assert goal.description == "Users should log in"
        assert goal.id.startswith("g-")

        second = engine.pull()
        assert (second.created, second.updated) == (0, 0)

        issue["title"] = "Add login with SSO"
        third = engine.pull()
        assert (third.created, third.updated) == (0, 1)

        refreshed = repository.find_by_issue_id(42)
        assert refreshed.id == goal.id
        assert refreshed.title == "Add login with SSO"
        assert repository.count() == 1

    def test_empty_body_is_idempotent(self, engine, fake_client, repository):
        """An empty body maps to no description and does not cause updates."""
        todo = fake_client.add_milestone("Todo")
        fake_client.add_issue(7, "No body", body="", milestone=todo)

        engine.pull()
        assert repository.find_by_issue_id(7).description is None
        assert engine.pull().updated == 0

    def test_never_deletes_goals(self, engine, fake_client, repository):
        todo = fake_client.add_milestone("Todo")
        fake_client.add_issue(1, "Short lived", milestone=todo)
        engine.pull()

        fake_client.issues.clear()
        result = engine.pull()
        assert result.created == 0
        assert repository.count() == 1

    def test_item_failure_does_not_abort_batch(self, engine, fake_client, repository):
        todo = fake_client.add_milestone("Todo")
        fake_client.add_issue(1, "First", milestone=todo)
        fake_client.add_issue(2, "Second", milestone=todo)
        repository.create(Goal(id="g-taken1", title="Existing"))

        original_create = repository.create

        def failing_create(goal):
            if goal.github_issue_id == 1:
                raise RuntimeError("disk full")
            return original_create(goal)

        repository.create = failing_create
        result = engine.pull()

        assert result.created == 1
        assert len(result.errors) == 1
        assert result.errors[0].item == "#1"
        assert "disk full" in result.errors[0].message
        assert result.success is False

    def test_gate_rejects_duplicate_titles(self, fake_client, repository):
        """With a gate, a new goal failing an error rule is skipped and reported."""
        engine = GitHubSyncEngine(fake_client, repository, gate=ValidationGate())
        repository.create(Goal(id="g-local1", title="Add Login"))
        todo = fake_client.add_milestone("Todo")
        fake_client.add_issue(42, "add login", milestone=todo)

        result = engine.pull()

        assert result.created == 0
        assert result.skipped == 1
        assert "already exists" in result.errors[0].message
        assert repository.find_by_issue_id(42) is None

    def test_progress_phases(self, engine, fake_client):
        phases = []
        todo = fake_client.add_milestone("Todo")
        fake_client.add_issue(1, "One", milestone=todo)

        engine.pull(progress_callback=lambda current, total, phase: phases.append(phase))

        seen = list(dict.fromkeys(phases))
        assert seen == [
            SyncPhase.FETCHING.value,
            SyncPhase.FILTERING.value,
            SyncPhase.RECONCILING.value,
            SyncPhase.REPORTING.value,
            SyncPhase.IDLE.value,
        ]


class TestPush:
    """Test pushing goal status to issues."""

    def test_done_goal_closes_issue(self, engine, fake_client):
        """Goal g-abc123 done: close, reuse Done milestone, one comment."""
        done = fake_client.add_milestone("Done")
        goal = Goal(id="g-abc123", title="Ship it", status="done", github_issue_id=42,
                    completed_at="2025-01-31T12:00:00.000Z")

        result = engine.push(goal, previous_status="in_progress")

        assert fake_client.calls_named("create_milestone") == []
        assert fake_client.calls_named("update_issue") == [("update_issue", 42, "closed", done["number"])]
        comments = fake_client.calls_named("create_comment")
        assert len(comments) == 1
        assert "g-abc123" in comments[0][2]
        assert "2025-01-31T12:00:00.000Z" in comments[0][2]
        assert result.state == "closed"
        assert result.milestone == "Done"
        assert result.commented is True
        assert result.milestone_created is False

    @pytest.mark.parametrize("previous_status", [None, "done"])
    def test_done_goal_without_transition_is_not_commented(self, engine, fake_client, previous_status):
        """Re-pushing a goal that was already done only syncs state and milestone."""
        fake_client.add_milestone("Done")
        goal = Goal(id="g-abc123", title="Ship it", status="done", github_issue_id=42)

        result = engine.push(goal, previous_status=previous_status)

        assert fake_client.calls_named("update_issue")[0][2] == "closed"
        assert fake_client.calls_named("create_comment") == []
        assert result.commented is False

    def test_push_many_never_comments(self, engine, fake_client):
        """Bulk pushes can run repeatedly without repeating completion comments."""
        goals = [
            Goal(id="g-aaa111", title="Shipped", status="done", github_issue_id=1),
            Goal(id="g-bbb222", title="Also shipped", status="done", github_issue_id=2),
        ]

        engine.push_many(goals)
        engine.push_many(goals)

        assert len(fake_client.calls_named("update_issue")) == 4
        assert fake_client.calls_named("create_comment") == []

    def test_missing_milestone_is_created(self, engine, fake_client):
        goal = Goal(id="g-abc123", title="Start", status="in_progress", branch_name="feature/x",
                    github_issue_id=8)

        result = engine.push(goal)

        assert fake_client.calls_named("create_milestone") == [("create_milestone", "In Progress")]
        assert fake_client.calls_named("update_issue")[0][2] == "open"
        assert fake_client.calls_named("create_comment") == []
        assert result.milestone_created is True

    def test_milestone_match_is_exact(self, engine, fake_client):
        """Milestone lookup on push is exact-title, so 'done' does not match 'Done'."""
        fake_client.add_milestone("done")
        engine.push(Goal(id="g-abc123", title="x", status="done", github_issue_id=1))
        assert fake_client.calls_named("create_milestone") == [("create_milestone", "Done")]

    def test_archived_goal_closes_without_comment(self, engine, fake_client):
        engine.push(Goal(id="g-abc123", title="Old", status="archived", github_issue_id=3))
        assert fake_client.calls_named("update_issue")[0][2] == "closed"
        assert fake_client.calls_named("create_comment") == []

    def test_goal_without_issue_is_skipped(self, engine, fake_client):
        result = engine.push(Goal(id="g-abc123", title="Local only", status="done"))
        assert result.skipped is True
        assert fake_client.calls == []

    def test_push_many_collects_failures(self, engine, fake_client):
        def failing_update(number, state=None, milestone=None, title=None):
            raise TrackerError("GitHub API error: 422", status_code=422)

        fake_client.update_issue = failing_update
        result = engine.push_many([
            Goal(id="g-aaa111", title="Linked", status="todo", github_issue_id=1),
            Goal(id="g-bbb222", title="Unlinked", status="todo"),
        ])

        assert result.skipped == 1
        assert result.updated == 0
        assert result.errors[0].item == "g-aaa111"


class TestInitializeAndPullRequests:
    """Test connection checks and merged-PR detection."""

    def test_initialize(self, engine):
        assert engine.initialize() == "octocat"

    def test_initialize_credential_failure_is_fatal(self, engine, fake_client):
        def denied():
            raise CredentialError("GitHub authentication failed", credential_type="GitHub")

        fake_client.get_authenticated_user = denied
        with pytest.raises(CredentialError):
            engine.initialize()

    def test_initialize_missing_repo_is_connect_error(self, engine, fake_client):
        def missing():
            raise TrackerError("GitHub API error: 404", status_code=404)

        fake_client.get_repository = missing
        with pytest.raises(ConnectError):
            engine.initialize()

    def test_merged_pull_request(self, engine, fake_client):
        fake_client.pull_requests["octo:feature/login"] = [
            RemotePullRequest(number=5, state="closed", merged_at=None),
            RemotePullRequest(number=6, state="closed", merged_at="2025-02-01T10:00:00Z", html_url="u"),
        ]
        goal = Goal(id="g-abc123", title="Login", status="in_progress", branch_name="feature/login")

        check = engine.check_pull_request(goal)

        assert check.merged is True
        assert check.number == 6
        assert fake_client.calls_named("list_pull_requests") == [
            ("list_pull_requests", "octo:feature/login", "all")
        ]
        assert fake_client.calls_named("update_issue") == []

    def test_no_merge_or_already_done(self, engine, fake_client):
        fake_client.pull_requests["octo:feature/login"] = [
            RemotePullRequest(number=6, state="closed", merged_at="2025-02-01T10:00:00Z"),
        ]
        open_goal = Goal(id="g-abc123", title="Login", status="in_progress", branch_name="feature/other")
        done_goal = Goal(id="g-def456", title="Login", status="done", branch_name="feature/login")

        assert engine.check_pull_request(open_goal).merged is False
        assert engine.check_pull_request(done_goal).merged is False
