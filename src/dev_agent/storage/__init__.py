"""
Dev Agent storage: SQLite schema store, goals and stored configuration.
"""

from dev_agent.storage.config_store import ConfigRepository
from dev_agent.storage.database import SchemaStore, utc_timestamp
from dev_agent.storage.goals import Goal, GoalRepository, GoalStatus
from dev_agent.storage.schema import MIGRATIONS, get_migration_versions

__all__ = [
    "ConfigRepository",
    "Goal",
    "GoalRepository",
    "GoalStatus",
    "MIGRATIONS",
    "SchemaStore",
    "get_migration_versions",
    "utc_timestamp",
]
