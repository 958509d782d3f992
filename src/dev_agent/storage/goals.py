"""
Goal records and their repository.

GoalRepository is plain CRUD over the ``goals`` table. It performs no
business validation; callers run the ValidationGate first. Storage
constraint failures (duplicate id, duplicate issue id, bad id prefix)
surface as ``sqlite3.IntegrityError``.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dev_agent.exceptions import ValidationError
from dev_agent.storage.database import SchemaStore, utc_timestamp

logger = logging.getLogger(__name__)


class GoalStatus(str, Enum):
    """Lifecycle states of a goal."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    ARCHIVED = "archived"

    @classmethod
    def values(cls) -> List[str]:
        return [status.value for status in cls]


class Goal(BaseModel):
    """A unit of planned work, optionally mirrored as a GitHub issue.

    ``status`` is kept as a plain string so an out-of-enum value can still
    reach the validation gate and be rejected there.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., description="AID with prefix 'g-'")
    title: str
    status: str = GoalStatus.TODO.value
    description: Optional[str] = None
    github_issue_id: Optional[int] = None
    branch_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Goal":
        return cls(**row)


# Columns update() may change; id and created_at are immutable
UPDATABLE_COLUMNS = (
    "title",
    "status",
    "description",
    "github_issue_id",
    "branch_name",
    "completed_at",
)


class GoalRepository:
    """CRUD over Goal records in a SchemaStore."""

    def __init__(self, store: SchemaStore):
        self.store = store

    def create(self, goal: Goal) -> Goal:
        """Insert a goal with a pre-minted id. Timestamps are store-assigned."""
        now = utc_timestamp()
        completed_at = goal.completed_at
        if goal.status == GoalStatus.DONE.value and not completed_at:
            completed_at = now

        self.store.execute(
            """
            INSERT INTO goals (
                id, github_issue_id, title, status, branch_name, description,
                created_at, updated_at, completed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                goal.id,
                goal.github_issue_id,
                goal.title,
                goal.status,
                goal.branch_name,
                goal.description,
                now,
                now,
                completed_at,
            ),
        )
        logger.debug("Created goal %s", goal.id)
        return self.find_by_id(goal.id)

    def update(self, goal_id: str, **changes: Any) -> Optional[Goal]:
        """Apply the provided column changes and refresh ``updated_at``.

        Returns:
            The updated goal, or None when no goal has this id

        Raises:
            ValidationError: If a change names a column that cannot be updated
        """
        unknown = [key for key in changes if key not in UPDATABLE_COLUMNS]
        if unknown:
            raise ValidationError(
                f"Cannot update goal field(s): {', '.join(sorted(unknown))}",
                field=unknown[0],
                expected_format=" | ".join(UPDATABLE_COLUMNS),
            )

        if isinstance(changes.get("status"), GoalStatus):
            changes["status"] = changes["status"].value

        current = self.find_by_id(goal_id)
        if current is None:
            return None

        completing = (
            changes.get("status") == GoalStatus.DONE.value
            and current.status != GoalStatus.DONE.value
        )
        if completing and "completed_at" not in changes:
            changes["completed_at"] = utc_timestamp()

        changes["updated_at"] = utc_timestamp()
        assignments = ", ".join(f"{column} = ?" for column in changes)
        params = list(changes.values()) + [goal_id]

        changed = self.store.execute(f"UPDATE goals SET {assignments} WHERE id = ?", params)
        if changed == 0:
            return None

        logger.debug("Updated goal %s: %s", goal_id, ", ".join(changes))
        return self.find_by_id(goal_id)

    def find_by_id(self, goal_id: str) -> Optional[Goal]:
        row = self.store.query_one("SELECT * FROM goals WHERE id = ?", (goal_id,))
        return Goal.from_row(row) if row else None

    def find_by_issue_id(self, issue_id: int) -> Optional[Goal]:
        row = self.store.query_one("SELECT * FROM goals WHERE github_issue_id = ?", (issue_id,))
        return Goal.from_row(row) if row else None

    def find_by_branch(self, branch_name: str) -> Optional[Goal]:
        row = self.store.query_one(
            "SELECT * FROM goals WHERE branch_name = ? ORDER BY created_at DESC LIMIT 1",
            (branch_name,),
        )
        return Goal.from_row(row) if row else None

    def list(self, status: Optional[str] = None) -> List[Goal]:
        """All goals, newest first, optionally filtered by status."""
        if status:
            rows = self.store.query_all(
                "SELECT * FROM goals WHERE status = ? ORDER BY created_at DESC, id",
                (status,),
            )
        else:
            rows = self.store.query_all("SELECT * FROM goals ORDER BY created_at DESC, id")
        return [Goal.from_row(row) for row in rows]

    def delete(self, goal_id: str) -> bool:
        """Hard delete. Synchronization never calls this."""
        deleted = self.store.execute("DELETE FROM goals WHERE id = ?", (goal_id,)) > 0
        if deleted:
            logger.info("Deleted goal %s", goal_id)
        return deleted

    def count(self, status: Optional[str] = None) -> int:
        if status:
            row = self.store.query_one("SELECT COUNT(*) AS n FROM goals WHERE status = ?", (status,))
        else:
            row = self.store.query_one("SELECT COUNT(*) AS n FROM goals")
        return row["n"] if row else 0

    def is_id_available(self, goal_id: str) -> bool:
        """Persistence check for AIDGenerator.generate_unique."""
        return self.store.query_one("SELECT 1 AS hit FROM goals WHERE id = ?", (goal_id,)) is None

    def has_goals(self) -> bool:
        return self.count() > 0
