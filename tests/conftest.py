"""Shared fixtures for Dev Agent tests."""

from typing import Any, Dict, List, Optional

import pytest

from dev_agent.storage import GoalRepository, SchemaStore
from dev_agent.sync.base import RemoteIssue, RemoteMilestone, RemotePullRequest


@pytest.fixture
def store():
    """Initialized in-memory store."""
    s = SchemaStore(":memory:")
    s.initialize()
    yield s
    s.close()


@pytest.fixture
def repository(store):
    return GoalRepository(store)


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient that records every call."""

    def __init__(self, owner: str = "octo", repo: str = "demo"):
        self.owner = owner
        self.repo = repo
        self.issues: List[Dict[str, Any]] = []
        self.milestones: List[RemoteMilestone] = []
        self.pull_requests: Dict[str, List[RemotePullRequest]] = {}
        self.calls: List[tuple] = []
        self._next_milestone = 1

    # Helpers for building remote state

    def add_milestone(self, title: str, state: str = "open") -> Dict[str, Any]:
        milestone = RemoteMilestone(number=self._next_milestone, id=1000 + self._next_milestone,
                                    title=title, state=state)
        self._next_milestone += 1
        self.milestones.append(milestone)
        return milestone.model_dump()

    def add_issue(
        self,
        number: int,
        title: str,
        body: Optional[str] = None,
        milestone: Optional[Dict[str, Any]] = None,
        pull_request: bool = False
    ) -> Dict[str, Any]:
        issue = {"number": number, "title": title, "body": body, "state": "open", "milestone": milestone}
        if pull_request:
            issue["pull_request"] = {"url": f"https://api.github.com/pulls/{number}"}
        self.issues.append(issue)
        return issue

    # GitHubClient surface

    def get_authenticated_user(self):
        self.calls.append(("get_authenticated_user",))
        return {"login": "octocat"}

    def get_repository(self):
        self.calls.append(("get_repository",))
        return {"full_name": f"{self.owner}/{self.repo}"}

    def iter_issue_pages(self, max_pages: int = 10, per_page: int = 100, state: str = "open"):
        self.calls.append(("iter_issue_pages", max_pages, per_page))
        issues = [RemoteIssue.from_api(i) for i in self.issues]
        for page in range(max_pages):
            chunk = issues[page * per_page:(page + 1) * per_page]
            yield chunk
            if len(chunk) < per_page:
                break

    def list_milestones(self, state: str = "all"):
        self.calls.append(("list_milestones", state))
        return list(self.milestones)

    def create_milestone(self, title: str, description: Optional[str] = None, state: str = "open"):
        self.calls.append(("create_milestone", title))
        return RemoteMilestone(**self.add_milestone(title, state))

    def update_issue(self, number: int, state=None, milestone=None, title=None):
        self.calls.append(("update_issue", number, state, milestone))
        return {"number": number, "state": state}

    def create_comment(self, number: int, body: str):
        self.calls.append(("create_comment", number, body))
        return {"id": 1, "body": body}

    def list_pull_requests(self, head: Optional[str] = None, state: str = "all"):
        self.calls.append(("list_pull_requests", head, state))
        return list(self.pull_requests.get(head, []))

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def fake_client():
    return FakeGitHubClient()
