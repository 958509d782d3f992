"""Tests for the GitHub REST client and retry helper."""

from unittest.mock import MagicMock

import pytest
import requests

from dev_agent.config import GitHubConfig
from dev_agent.exceptions import CredentialError, NetworkError, TrackerError
from dev_agent.sync import GitHubClient, retry_with_backoff

TOKEN = "ghp_" + "a" * 36


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.content = b"{}" if payload is not None else b""
    response.text = ""
    return response


def make_client(*responses, max_retries=3):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    client = GitHubClient(
        GitHubConfig(owner="octo", repo="demo", token=TOKEN),
        session=session,
        max_retries=max_retries,
        sleep=lambda seconds: None,
    )
    return client, session


class TestGitHubClient:
    """Test request handling and payload parsing."""

    def test_headers(self):
        client, session = make_client()
        assert session.headers["Authorization"] == f"Bearer {TOKEN}"
        assert session.headers["Accept"] == "application/vnd.github+json"

    def test_list_issues_parses_and_flags_pull_requests(self):
        client, session = make_client(make_response(payload=[
            {"number": 1, "title": "Issue", "body": "", "milestone": {"number": 3, "title": "Todo", "state": "open"}},
            {"number": 2, "title": "PR", "pull_request": {"url": "x"}, "milestone": None},
        ]))

        issues = client.list_issues(page=2)

        assert issues[0].milestone.title == "Todo"
        assert issues[0].description is None
        assert issues[0].is_pull_request is False
        assert issues[1].is_pull_request is True

        method, url = session.request.call_args[0]
        params = session.request.call_args[1]["params"]
        assert method == "GET"
        assert url == "https://api.github.com/repos/octo/demo/issues"
        assert params == {"state": "open", "sort": "updated", "direction": "desc", "per_page": 100, "page": 2}

    def test_iter_issue_pages_stops_on_short_page(self):
        full = [{"number": i, "title": f"#{i}"} for i in range(2)]
        client, session = make_client(
            make_response(payload=full),
            make_response(payload=full[:1]),
        )

        pages = list(client.iter_issue_pages(max_pages=10, per_page=2))
        assert [len(p) for p in pages] == [2, 1]
        assert session.request.call_count == 2

    def test_iter_issue_pages_respects_max_pages(self):
        full = [{"number": i, "title": f"#{i}"} for i in range(2)]
        client, session = make_client(*[make_response(payload=full) for _ in range(5)])

        pages = list(client.iter_issue_pages(max_pages=3, per_page=2))
        assert len(pages) == 3

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failures_raise_credential_error(self, status):
        client, session = make_client(make_response(status))
        with pytest.raises(CredentialError):
            client.get_authenticated_user()
        assert session.request.call_count == 1

    def test_not_found_raises_tracker_error_without_retry(self):
        client, session = make_client(make_response(404))
        with pytest.raises(TrackerError) as exc_info:
            client.get_repository()
        assert exc_info.value.status_code == 404
        assert session.request.call_count == 1

    def test_get_retries_server_errors(self):
        client, session = make_client(
            make_response(502),
            make_response(payload={"login": "octocat"}),
        )
        assert client.get_authenticated_user() == {"login": "octocat"}
        assert session.request.call_count == 2

    def test_get_connection_errors_become_network_error(self):
        client, session = make_client(
            requests.ConnectionError("reset"),
            requests.ConnectionError("reset"),
            max_retries=2,
        )
        with pytest.raises(NetworkError):
            client.get_authenticated_user()
        assert session.request.call_count == 2

    def test_mutations_are_not_retried(self):
        client, session = make_client(make_response(502), make_response(payload={}))
        with pytest.raises(TrackerError):
            client.update_issue(5, state="closed", milestone=2)
        assert session.request.call_count == 1

    def test_update_issue_payload(self):
        client, session = make_client(make_response(payload={"number": 5}))
        client.update_issue(5, state="closed", milestone=2)

        method, url = session.request.call_args[0]
        assert method == "PATCH"
        assert url.endswith("/repos/octo/demo/issues/5")
        assert session.request.call_args[1]["json"] == {"state": "closed", "milestone": 2}

    def test_create_milestone_and_comment(self):
        client, session = make_client(
            make_response(201, {"number": 9, "id": 900, "title": "Done", "state": "open"}),
            make_response(201, {"id": 1, "body": "hi"}),
        )
        milestone = client.create_milestone("Done")
        client.create_comment(5, "hi")

        assert milestone.number == 9
        assert session.request.call_args[1]["json"] == {"body": "hi"}

    def test_list_pull_requests_head_filter(self):
        client, session = make_client(make_response(payload=[
            {"number": 3, "state": "closed", "merged_at": "2025-01-01T00:00:00Z", "html_url": "u"},
        ]))
        pulls = client.list_pull_requests(head="octo:feature/x")

        assert pulls[0].merged_at == "2025-01-01T00:00:00Z"
        assert session.request.call_args[1]["params"]["head"] == "octo:feature/x"


class TestRetryWithBackoff:
    """Test the retry decorator."""

    def test_retries_then_succeeds(self):
        delays = []
        attempts = []

        @retry_with_backoff(max_retries=3, base_delay=1.0, retry_on=(ValueError,), sleep=delays.append)
        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ValueError("not yet")
            return "ok"

        assert flaky() == "ok"
        assert delays == [1.0, 2.0]

    def test_reraises_last_error(self):
        @retry_with_backoff(max_retries=2, retry_on=(ValueError,), sleep=lambda s: None)
        def always_fails():
            raise ValueError("nope")

        with pytest.raises(ValueError, match="nope"):
            always_fails()

    def test_other_errors_propagate_immediately(self):
        attempts = []

        @retry_with_backoff(max_retries=3, retry_on=(ValueError,), sleep=lambda s: None)
        def wrong_kind():
            attempts.append(1)
            raise KeyError("x")

        with pytest.raises(KeyError):
            wrong_kind()
        assert len(attempts) == 1
