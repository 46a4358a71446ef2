"""
models/author.py
----------------
Domain model for issue authors and assignees (raw.author).
"""

from dataclasses import dataclass

from db.errors import ValidationError


@dataclass
class Author:
    """
    A person who creates, changes or is assigned issues.

    Attributes:
        id: Identity assigned by the tracker.
        name: Display name; not guaranteed unique.
    """
    id: int
    name: str

    def validate(self) -> None:
        if not self.name:
            raise ValidationError("author name cannot be empty")
        if not self.id:
            raise ValidationError("author id cannot be zero")
