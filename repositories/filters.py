"""
repositories/filters.py
-----------------------
Pagination and search helpers shared by the `list()` operations.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_LIMIT = 100


@dataclass
class ListFilter:
    """
    Offset-based page request.

    Attributes:
        limit: Page size; values <= 0 fall back to DEFAULT_LIMIT.
        offset: Rows to skip; negative values are treated as 0.
        search: Case-insensitive substring matched against the
            repository's text column (author name, project title, issue key).
    """
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    search: Optional[str] = None

    def normalized(self) -> "ListFilter":
        return ListFilter(
            limit=self.limit if self.limit and self.limit > 0 else DEFAULT_LIMIT,
            offset=max(self.offset or 0, 0),
            search=self.search or None,
        )


def build_list_query(
    base_sql: str,
    list_filter: Optional[ListFilter],
    search_column: str,
    order_by: str,
) -> tuple[str, list]:
    """
    Append a parameterized WHERE / ORDER BY / LIMIT / OFFSET to `base_sql`.

    `search_column` and `order_by` come from repository code, never from
    callers; every caller-supplied value is passed as a bind parameter.

    Returns:
        (sql, params) ready for ``cursor.execute``.
    """
    f = (list_filter or ListFilter()).normalized()
    sql = base_sql
    params: list = []
    if f.search:
        sql += f" WHERE {search_column} ILIKE %s"
        params.append(f"%{f.search}%")
    sql += f" ORDER BY {order_by} LIMIT %s OFFSET %s;"
    params.extend([f.limit, f.offset])
    return sql, params
