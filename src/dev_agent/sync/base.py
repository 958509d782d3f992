"""
Dev Agent Sync Base Classes

Result and progress types shared by the tracker sync engine, plus the
transient models parsed from GitHub REST payloads.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from dev_agent.exceptions import SyncItemError


class SyncPhase(str, Enum):
    """Phases of one sync invocation."""

    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    RECONCILING = "reconciling"
    REPORTING = "reporting"


@dataclass
class SyncResult:
    """Result of a sync operation."""
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[SyncItemError] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        parts = [f"{self.created} created", f"{self.updated} updated"]
        if self.skipped:
            parts.append(f"{self.skipped} skipped")
        if self.errors:
            parts.append(f"{len(self.errors)} error(s)")
        return ", ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": [e.message for e in self.errors],
        }


@dataclass
class SyncProgress:
    """Progress tracking for sync operations."""
    total: int = 0
    current: int = 0
    phase: SyncPhase = SyncPhase.IDLE
    callback: Optional[Callable[[int, int, str], None]] = None

    def update(self, current: int, phase: Optional[SyncPhase] = None):
        """Update progress and call callback if set."""
        self.current = current
        if phase:
            self.phase = phase
        if self.callback:
            self.callback(self.current, self.total, self.phase.value)

    def increment(self, phase: Optional[SyncPhase] = None):
        """Increment progress by 1."""
        self.update(self.current + 1, phase)

    def enter(self, phase: SyncPhase, total: Optional[int] = None):
        """Start a new phase, resetting the counter."""
        if total is not None:
            self.total = total
        self.update(0, phase)


@dataclass
class PushResult:
    """Outcome of pushing one goal's status to its issue."""
    goal_id: str
    issue_number: Optional[int] = None
    state: Optional[str] = None
    milestone: Optional[str] = None
    milestone_created: bool = False
    commented: bool = False
    skipped: bool = False
    reason: str = ""


@dataclass
class PullRequestCheck:
    """Tagged result of a merged-pull-request lookup."""
    merged: bool
    number: Optional[int] = None
    merged_at: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def none(cls) -> "PullRequestCheck":
        return cls(merged=False)

    @classmethod
    def from_pull_request(cls, pull: "RemotePullRequest") -> "PullRequestCheck":
        return cls(merged=True, number=pull.number, merged_at=pull.merged_at, url=pull.html_url)


class RemoteMilestone(BaseModel):
    """A GitHub milestone."""

    model_config = ConfigDict(extra="ignore")

    number: int
    title: str
    state: str = "open"
    id: Optional[int] = None


class RemoteIssue(BaseModel):
    """A GitHub issue. ``is_pull_request`` marks PRs the issues API also returns."""

    model_config = ConfigDict(extra="ignore")

    number: int
    title: str
    body: Optional[str] = None
    state: str = "open"
    milestone: Optional[RemoteMilestone] = None
    html_url: Optional[str] = None
    updated_at: Optional[str] = None
    is_pull_request: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteIssue":
        return cls(**data, is_pull_request="pull_request" in data)

    @property
    def description(self) -> Optional[str]:
        """Body with empty text treated as absent."""
        return self.body if self.body else None


class RemotePullRequest(BaseModel):
    """A GitHub pull request."""

    model_config = ConfigDict(extra="ignore")

    number: int
    state: str = "open"
    merged_at: Optional[str] = None
    html_url: Optional[str] = None
    title: Optional[str] = None
