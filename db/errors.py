"""
db/errors.py
------------
Typed errors raised by the data-access layer.

Callers branch on these rather than on driver exceptions: the psycopg2
error that caused a `StoreError` stays reachable through `__cause__`.
"""


class RepositoryError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(RepositoryError):
    """A caller-supplied entity failed a precondition (zero id, empty field)."""


class NotFoundError(RepositoryError):
    """The target of an update or delete does not exist."""


class AlreadyExistsError(RepositoryError):
    """A create collided with an existing identity."""


class StoreError(RepositoryError):
    """The database rejected or failed to execute a statement."""


class DatabaseConnectionError(StoreError):
    """The pool could not be opened, pinged, or is already closed."""
