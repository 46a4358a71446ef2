"""
models/issue.py
---------------
Domain model for tracker issues (raw.issue).
"""

from dataclasses import astuple, dataclass, fields
from datetime import datetime
from typing import Optional

from db.errors import ValidationError

# Statuses that count an issue as done.
CLOSED_STATUSES = ("Closed", "Resolved")


@dataclass
class Issue:
    """
    A single tracker issue.

    Attributes:
        id: Identity assigned by the tracker.
        project_id: Owning project (raw.project.id).
        author_id: Reporter (raw.author.id).
        key: Tracker key, e.g. 'PROJ-42'.
        assignee_id: Current assignee, if any.
        summary, description, type, priority, status: Free-text attributes.
        created_time, closed_time, updated_time: Lifecycle timestamps.
        time_spent: Logged work, in seconds.

    Field order matches the column order of raw.issue.
    """
    id: int
    project_id: int
    author_id: int
    assignee_id: Optional[int] = None
    key: str = ""
    summary: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    created_time: Optional[datetime] = None
    closed_time: Optional[datetime] = None
    updated_time: Optional[datetime] = None
    time_spent: Optional[int] = None

    @classmethod
    def columns(cls) -> list[str]:
        """Column names of raw.issue, in field order."""
        return [f.name for f in fields(cls)]

    @classmethod
    def from_row(cls, row: tuple) -> "Issue":
        return cls(*row)

    def as_row(self) -> tuple:
        return astuple(self)

    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    def validate(self) -> None:
        """Raise ValidationError unless the issue can be written."""
        if not self.id:
            raise ValidationError("issue id cannot be zero")
        if not self.project_id:
            raise ValidationError("issue project_id cannot be zero")
        if not self.author_id:
            raise ValidationError("issue author_id cannot be zero")
        if not self.key:
            raise ValidationError("issue key cannot be empty")

    def __str__(self) -> str:
        return f"{self.key} [{self.status or 'no status'}] {self.summary or ''}".rstrip()
