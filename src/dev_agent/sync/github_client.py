"""
GitHub REST client.

Thin wrapper over the issues, milestones, comments and pulls endpoints of
one repository. Reads are retried with exponential backoff on transport
errors and 5xx answers; mutations are sent once.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests

from dev_agent.config import GitHubConfig
from dev_agent.exceptions import CredentialError, NetworkError, TrackerError
from dev_agent.sync.base import RemoteIssue, RemoteMilestone, RemotePullRequest
from dev_agent.sync.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class TransientTrackerError(TrackerError):
    """A 5xx answer; worth retrying for reads."""


class GitHubClient:
    """GitHub API client bound to one repository."""

    API_BASE = "https://api.github.com"
    API_VERSION = "2022-11-28"

    def __init__(
        self,
        config: GitHubConfig,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.owner = config.owner
        self.repo = config.repo
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self._sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.API_VERSION,
        })

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    # ========== Transport ==========

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        payload: Optional[Dict] = None
    ) -> Any:
        """Make a GitHub API call and decode the JSON answer."""
        url = f"{self.API_BASE}{endpoint}"
        response = self.session.request(
            method,
            url,
            params=params or None,
            json=payload,
            timeout=self.timeout,
        )

        if response.status_code == 401:
            raise CredentialError(
                "GitHub authentication failed: Invalid or expired token",
                credential_type="GitHub"
            )
        elif response.status_code == 403:
            raise CredentialError(
                "GitHub access denied: Token may lack required permissions",
                credential_type="GitHub"
            )
        elif response.status_code >= 500:
            raise TransientTrackerError(
                f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
                endpoint=url,
            )
        elif not 200 <= response.status_code < 300:
            raise TrackerError(
                f"GitHub API error: {response.status_code} on {method} {endpoint}",
                status_code=response.status_code,
                endpoint=url,
                details=response.text[:500] if response.text else None,
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _get(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        """GET with retry on transport errors and 5xx."""
        fetch = retry_with_backoff(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            retry_on=(requests.ConnectionError, requests.Timeout, TransientTrackerError),
            sleep=self._sleep,
        )(self._request)

        try:
            return fetch("GET", endpoint, params=params)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkError(
                f"Could not reach GitHub after {self.max_retries} attempt(s)",
                endpoint=f"{self.API_BASE}{endpoint}",
                details=str(e),
            ) from e

    def _send(self, method: str, endpoint: str, payload: Dict) -> Any:
        try:
            return self._request(method, endpoint, payload=payload)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkError(
                f"GitHub {method} request failed",
                endpoint=f"{self.API_BASE}{endpoint}",
                details=str(e),
            ) from e

    # ========== Identity ==========

    def get_authenticated_user(self) -> Dict[str, Any]:
        return self._get("/user")

    def get_repository(self) -> Dict[str, Any]:
        return self._get(self.repo_path)

    # ========== Issues ==========

    def list_issues(
        self,
        state: str = "open",
        sort: str = "updated",
        direction: str = "desc",
        per_page: int = 100,
        page: int = 1
    ) -> List[RemoteIssue]:
        """Fetch one page of issues (pull requests included, flagged)."""
        data = self._get(
            f"{self.repo_path}/issues",
            params={
                "state": state,
                "sort": sort,
                "direction": direction,
                "per_page": per_page,
                "page": page,
            },
        )
        return [RemoteIssue.from_api(item) for item in data or []]

    def iter_issue_pages(
        self,
        max_pages: int = 10,
        per_page: int = 100,
        state: str = "open"
    ) -> Iterator[List[RemoteIssue]]:
        """Yield issue pages until a short page or ``max_pages``."""
        for page in range(1, max_pages + 1):
            issues = self.list_issues(state=state, per_page=per_page, page=page)
            logger.debug("Fetched issues page %d (%d items)", page, len(issues))
            yield issues
            if len(issues) < per_page:
                break

    def update_issue(
        self,
        number: int,
        state: Optional[str] = None,
        milestone: Optional[int] = None,
        title: Optional[str] = None
    ) -> Dict[str, Any]:
        """Update an issue; ``milestone`` is the milestone number."""
        payload: Dict[str, Any] = {}
        if state is not None:
            payload["state"] = state
        if milestone is not None:
            payload["milestone"] = milestone
        if title is not None:
            payload["title"] = title
        return self._send("PATCH", f"{self.repo_path}/issues/{number}", payload)

    def create_comment(self, number: int, body: str) -> Dict[str, Any]:
        return self._send("POST", f"{self.repo_path}/issues/{number}/comments", {"body": body})

    # ========== Milestones ==========

    def list_milestones(self, state: str = "all", per_page: int = 100) -> List[RemoteMilestone]:
        data = self._get(
            f"{self.repo_path}/milestones",
            params={"state": state, "per_page": per_page},
        )
        return [RemoteMilestone(**item) for item in data or []]

    def create_milestone(
        self,
        title: str,
        description: Optional[str] = None,
        state: str = "open"
    ) -> RemoteMilestone:
        payload = {"title": title, "state": state}
        if description:
            payload["description"] = description
        data = self._send("POST", f"{self.repo_path}/milestones", payload)
        logger.info("Created milestone '%s'", title)
        return RemoteMilestone(**data)

    # ========== Pull requests ==========

    def list_pull_requests(self, head: Optional[str] = None, state: str = "all") -> List[RemotePullRequest]:
        """List pull requests, optionally filtered by ``owner:branch`` head."""
        params: Dict[str, Any] = {"state": state, "per_page": 100}
        if head:
            params["head"] = head
        data = self._get(f"{self.repo_path}/pulls", params=params)
        return [RemotePullRequest(**item) for item in data or []]
