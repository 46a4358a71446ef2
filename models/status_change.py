"""
models/status_change.py
-----------------------
Domain model for the issue status history (raw.status_changes).
"""

from dataclasses import dataclass
from datetime import datetime

from db.errors import ValidationError


@dataclass
class StatusChange:
    """
    One transition in an issue's workflow. Rows have no identity of their own.

    Attributes:
        issue_id: Issue that changed (raw.issue.id).
        author_id: Who made the change (raw.author.id).
        change_time: When the transition happened.
        from_status: Status before the change.
        to_status: Status after the change.
    """
    issue_id: int
    author_id: int
    change_time: datetime
    from_status: str
    to_status: str

    def validate(self) -> None:
        if not self.issue_id:
            raise ValidationError("status change issue_id cannot be zero")
        if not self.author_id:
            raise ValidationError("status change author_id cannot be zero")
        if self.change_time is None:
            raise ValidationError("status change change_time is required")

    def as_row(self) -> tuple:
        return (self.issue_id, self.author_id, self.change_time, self.from_status, self.to_status)

    def __str__(self) -> str:
        return f"issue {self.issue_id}: {self.from_status} -> {self.to_status} at {self.change_time}"
