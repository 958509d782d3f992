"""
Dev Agent tracker synchronization (GitHub).
"""

from dev_agent.sync.base import (
    PullRequestCheck,
    PushResult,
    RemoteIssue,
    RemoteMilestone,
    RemotePullRequest,
    SyncPhase,
    SyncProgress,
    SyncResult,
)
from dev_agent.sync.github_client import GitHubClient
from dev_agent.sync.github_sync import GitHubSyncEngine, is_todo_issue
from dev_agent.sync.retry import retry_with_backoff

__all__ = [
    "GitHubClient",
    "GitHubSyncEngine",
    "PullRequestCheck",
    "PushResult",
    "RemoteIssue",
    "RemoteMilestone",
    "RemotePullRequest",
    "SyncPhase",
    "SyncProgress",
    "SyncResult",
    "is_todo_issue",
    "retry_with_backoff",
]
