"""
models/project.py
-----------------
Domain model for tracker projects (raw.project).
"""

from dataclasses import dataclass

from db.errors import ValidationError


@dataclass
class Project:
    """
    A tracker project.

    Attributes:
        id: Identity assigned by the tracker (never generated here).
        title: Human-readable project name.
    """
    id: int
    title: str

    def validate(self) -> None:
        """Raise ValidationError unless the project can be written."""
        if not self.id:
            raise ValidationError("project id cannot be zero")
        if not self.title:
            raise ValidationError("project title cannot be empty")

    def __str__(self) -> str:
        return f"#{self.id} {self.title}"
