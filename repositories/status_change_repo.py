"""
repositories/status_change_repo.py
----------------------------------
Data access layer for the issue status history.
All SQL queries related to the `raw.status_changes` table live here.
"""

from collections.abc import Sequence

import psycopg2
from psycopg2 import extras

from db.connection import Database
from db.errors import NotFoundError, StoreError
from models.status_change import StatusChange
from utils.logger import get_logger

logger = get_logger(__name__)

_INSERT_SQL = """
    INSERT INTO raw.status_changes
        (issue_id, author_id, change_time, from_status, to_status)
    VALUES (%s, %s, %s, %s, %s);
"""


class StatusChangeRepository:
    """Repository for the append-only raw.status_changes log."""

    def __init__(self, db: Database):
        self.db = db

    # ── CREATE ────────────────────────────────────────────

    def create(self, change: StatusChange) -> StatusChange:
        """Append one status change."""
        change.validate()
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(_INSERT_SQL, change.as_row())
            conn.commit()
            logger.info(f"Recorded status change for issue #{change.issue_id}")
            return change
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to create status change for issue #{change.issue_id}: {e}")
            raise StoreError(f"create status change: {e}") from e
        finally:
            self.db.release_connection(conn)

    def bulk_insert(self, changes: Sequence[StatusChange]) -> int:
        """
        Append many status changes in a single transaction.

        Either every row is committed or none is: any failure rolls the
        whole batch back. An empty batch is a no-op.

        Returns:
            Number of rows inserted.
        """
        if not changes:
            return 0
        for change in changes:
            change.validate()
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                extras.execute_batch(cur, _INSERT_SQL, [c.as_row() for c in changes])
            conn.commit()
            logger.info(f"Bulk inserted {len(changes)} status changes")
            return len(changes)
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to bulk insert {len(changes)} status changes, rolled back: {e}")
            raise StoreError(f"bulk insert status changes: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_issue_id(self, issue_id: int) -> list[StatusChange]:
        """Full history of one issue, oldest change first."""
        sql = """
            SELECT issue_id, author_id, change_time, from_status, to_status
            FROM raw.status_changes
            WHERE issue_id = %s
            ORDER BY change_time ASC;
        """
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (issue_id,))
                return [self._row_to_change(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to get status changes of issue #{issue_id}: {e}")
            raise StoreError(f"get status changes of issue #{issue_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def get_by_project_id(self, project_id: int) -> list[StatusChange]:
        """Full history of every issue in a project, oldest change first."""
        sql = """
            SELECT sc.issue_id, sc.author_id, sc.change_time, sc.from_status, sc.to_status
            FROM raw.status_changes sc
            JOIN raw.issue i ON sc.issue_id = i.id
            WHERE i.project_id = %s
            ORDER BY sc.change_time ASC;
        """
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (project_id,))
                return [self._row_to_change(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to get status changes of project #{project_id}: {e}")
            raise StoreError(f"get status changes of project #{project_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── DELETE ────────────────────────────────────────────

    def delete_by_issue_id(self, issue_id: int) -> int:
        """
        Drop the history of one issue.

        Returns:
            Number of rows deleted.

        Raises:
            NotFoundError: If the issue had no recorded changes.
        """
        sql = "DELETE FROM raw.status_changes WHERE issue_id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (issue_id,))
                deleted = cur.rowcount
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to delete status changes of issue #{issue_id}: {e}")
            raise StoreError(f"delete status changes of issue #{issue_id}: {e}") from e
        finally:
            self.db.release_connection(conn)
        if deleted <= 0:
            raise NotFoundError(f"no status changes for issue #{issue_id}")
        logger.info(f"Deleted {deleted} status changes of issue #{issue_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_change(row: tuple) -> StatusChange:
        return StatusChange(
            issue_id=row[0],
            author_id=row[1],
            change_time=row[2],
            from_status=row[3],
            to_status=row[4],
        )
