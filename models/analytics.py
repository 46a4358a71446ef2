"""
models/analytics.py
-------------------
Domain model for precomputed analytics payloads (analytics.* tables).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

# Any JSON value. Payloads are stored and returned untouched.
Document = Union[None, bool, int, float, str, list[Any], dict[str, Any]]


@dataclass
class AnalyticsRecord:
    """
    One stored analytics snapshot.

    Attributes:
        project_id: Project the payload was computed for.
        creation_time: Server time at which the row was written.
        data: Opaque JSON payload.
        state: Workflow state the payload is scoped to, for the
            state-keyed tables; None otherwise.
    """
    project_id: int
    creation_time: datetime
    data: Document
    state: Optional[str] = None
