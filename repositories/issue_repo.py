"""
repositories/issue_repo.py
--------------------------
Data access layer for tracker issues.
All SQL queries related to the `raw.issue` table live here, including the
per-project aggregates (open/closed counts, average resolution time).
"""

from typing import Optional

import psycopg2
from psycopg2.errors import UniqueViolation

from db.connection import Database
from db.errors import AlreadyExistsError, NotFoundError, StoreError
from models.issue import CLOSED_STATUSES, Issue
from repositories.filters import ListFilter, build_list_query
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = ", ".join(Issue.columns())
_PLACEHOLDERS = ", ".join(["%s"] * len(Issue.columns()))
_SELECT = f"SELECT {_COLUMNS} FROM raw.issue"


class IssueRepository:
    """Repository for CRUD operations and aggregates on the raw.issue table."""

    def __init__(self, db: Database):
        self.db = db

    # ── CREATE ────────────────────────────────────────────

    def create(self, issue: Issue) -> Issue:
        """
        Insert a new issue.

        Raises:
            ValidationError: If id, project_id, author_id or key is missing.
            AlreadyExistsError: If an issue with this id already exists.
            StoreError: For any other failure (e.g. unknown project).
        """
        issue.validate()
        sql = f"INSERT INTO raw.issue ({_COLUMNS}) VALUES ({_PLACEHOLDERS});"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, issue.as_row())
            conn.commit()
            logger.info(f"Created issue #{issue.id} ({issue.key})")
            return issue
        except UniqueViolation as e:
            conn.rollback()
            logger.warning(f"Issue #{issue.id} already exists")
            raise AlreadyExistsError(f"issue #{issue.id} already exists") from e
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to create issue #{issue.id}: {e}")
            raise StoreError(f"create issue #{issue.id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def upsert(self, issue: Issue) -> Issue:
        """Insert the issue, or overwrite every other column if the id exists."""
        assignments = ", ".join(
            f"{col} = EXCLUDED.{col}" for col in Issue.columns() if col != "id"
        )
        sql = f"""
            INSERT INTO raw.issue ({_COLUMNS})
            VALUES ({_PLACEHOLDERS})
            ON CONFLICT (id) DO UPDATE SET {assignments};
        """
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, issue.as_row())
            conn.commit()
            logger.info(f"Upserted issue #{issue.id} ({issue.key})")
            return issue
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to upsert issue #{issue.id}: {e}")
            raise StoreError(f"upsert issue #{issue.id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, issue_id: int) -> Optional[Issue]:
        """
        Fetch a single issue.

        Returns:
            An Issue, or None if not found.
        """
        sql = f"{_SELECT} WHERE id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (issue_id,))
                row = cur.fetchone()
                return Issue.from_row(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to get issue #{issue_id}: {e}")
            raise StoreError(f"get issue #{issue_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def get_all(self) -> list[Issue]:
        """Every issue, ordered by id."""
        sql = f"{_SELECT} ORDER BY id;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql)
                return [Issue.from_row(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to get issues: {e}")
            raise StoreError(f"get all issues: {e}") from e
        finally:
            self.db.release_connection(conn)

    def get_by_project_id(self, project_id: int) -> list[Issue]:
        """All issues of a project, newest first. Undated issues sort ahead of dated ones."""
        sql = f"{_SELECT} WHERE project_id = %s ORDER BY created_time DESC, id;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (project_id,))
                return [Issue.from_row(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to get issues of project #{project_id}: {e}")
            raise StoreError(f"get issues by project #{project_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def list(self, list_filter: Optional[ListFilter] = None) -> list[Issue]:
        """One page of issues ordered by id, optionally searched by key."""
        sql, params = build_list_query(_SELECT, list_filter, "key", "id")
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [Issue.from_row(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to list issues: {e}")
            raise StoreError(f"list issues: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── AGGREGATES ────────────────────────────────────────

    def count(self) -> int:
        return self._scalar_count("SELECT COUNT(*) FROM raw.issue;", (), "count issues")

    def count_by_project(self, project_id: int) -> int:
        sql = "SELECT COUNT(*) FROM raw.issue WHERE project_id = %s;"
        return self._scalar_count(sql, (project_id,), f"count issues of project #{project_id}")

    def get_open_count_by_project(self, project_id: int) -> int:
        """Issues whose status is neither Closed nor Resolved. NULL status counts as open."""
        sql = """
            SELECT COUNT(*)
            FROM raw.issue
            WHERE project_id = %s
              AND status IS DISTINCT FROM %s
              AND status IS DISTINCT FROM %s;
        """
        return self._scalar_count(
            sql, (project_id, *CLOSED_STATUSES), f"count open issues of project #{project_id}"
        )

    def get_closed_count_by_project(self, project_id: int) -> int:
        """Issues whose status is Closed or Resolved."""
        sql = """
            SELECT COUNT(*)
            FROM raw.issue
            WHERE project_id = %s
              AND status IN %s;
        """
        return self._scalar_count(
            sql, (project_id, CLOSED_STATUSES), f"count closed issues of project #{project_id}"
        )

    def get_average_time_by_project(self, project_id: int) -> Optional[float]:
        """
        Mean time from creation to close, in hours, over the project's issues
        that have both timestamps.

        Returns:
            The average, or None when no issue of the project qualifies.
        """
        sql = """
            SELECT AVG(EXTRACT(EPOCH FROM (closed_time - created_time)) / 3600)
            FROM raw.issue
            WHERE project_id = %s
              AND closed_time IS NOT NULL
              AND created_time IS NOT NULL;
        """
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (project_id,))
                value = cur.fetchone()[0]
                return float(value) if value is not None else None
        except psycopg2.Error as e:
            logger.error(f"Failed to average resolution time of project #{project_id}: {e}")
            raise StoreError(f"average time of project #{project_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, issue: Issue) -> Issue:
        """
        Overwrite every column of an existing issue.

        Raises:
            NotFoundError: If no issue has this id.
        """
        issue.validate()
        columns = [c for c in Issue.columns() if c != "id"]
        assignments = ", ".join(f"{col} = %s" for col in columns)
        sql = f"UPDATE raw.issue SET {assignments} WHERE id = %s;"
        params = [getattr(issue, col) for col in columns] + [issue.id]
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                updated = cur.rowcount > 0
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to update issue #{issue.id}: {e}")
            raise StoreError(f"update issue #{issue.id}: {e}") from e
        finally:
            self.db.release_connection(conn)
        if not updated:
            raise NotFoundError(f"issue #{issue.id} not found")
        logger.info(f"Updated issue #{issue.id} ({issue.key})")
        return issue

    # ── DELETE ────────────────────────────────────────────

    def delete(self, issue_id: int) -> None:
        """
        Delete an issue by id.

        Raises:
            NotFoundError: If no issue has this id.
        """
        sql = "DELETE FROM raw.issue WHERE id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (issue_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to delete issue #{issue_id}: {e}")
            raise StoreError(f"delete issue #{issue_id}: {e}") from e
        finally:
            self.db.release_connection(conn)
        if not deleted:
            raise NotFoundError(f"issue #{issue_id} not found")
        logger.info(f"Deleted issue #{issue_id}")

    # ── HELPERS ───────────────────────────────────────────

    def _scalar_count(self, sql: str, params: tuple, what: str) -> int:
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return int(cur.fetchone()[0])
        except psycopg2.Error as e:
            logger.error(f"Failed to {what}: {e}")
            raise StoreError(f"{what}: {e}") from e
        finally:
            self.db.release_connection(conn)
