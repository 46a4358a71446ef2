"""
repositories/analytics_repo.py
------------------------------
Data access layer for precomputed analytics payloads.

Five append-only tables share one shape: a project id, a server-assigned
creation time, an optional workflow state, and an opaque JSON document.
Payloads are never inspected here; they go in and come back unchanged.
"""

import json
from typing import NamedTuple, Optional

import psycopg2

from db.connection import Database
from db.errors import StoreError, ValidationError
from models.analytics import AnalyticsRecord, Document
from utils.logger import get_logger

logger = get_logger(__name__)


class AnalyticsTable(NamedTuple):
    name: str
    keyed_by_state: bool

    @property
    def qualified(self) -> str:
        return f"analytics.{self.name}"


OPEN_TASK_TIME = AnalyticsTable("open_task_time", False)
TASK_STATE_TIME = AnalyticsTable("task_state_time", True)
COMPLEXITY_TASK_TIME = AnalyticsTable("complexity_task_time", False)
TASK_PRIORITY_COUNT = AnalyticsTable("task_priority_count", True)
ACTIVITY_BY_TASK = AnalyticsTable("activity_by_task", True)

ANALYTICS_TABLES = (
    OPEN_TASK_TIME,
    TASK_STATE_TIME,
    COMPLEXITY_TASK_TIME,
    TASK_PRIORITY_COUNT,
    ACTIVITY_BY_TASK,
)


class AnalyticsRepository:
    """Repository for the five analytics.* payload tables."""

    def __init__(self, db: Database):
        self.db = db

    # ── OPEN TASK TIME ────────────────────────────────────

    def save_open_task_time(self, project_id: int, data: Document) -> None:
        self._save(OPEN_TASK_TIME, project_id, None, data)

    def get_open_task_time(self, project_id: int) -> list[AnalyticsRecord]:
        return self._get(OPEN_TASK_TIME, project_id, None)

    # ── TASK STATE TIME ───────────────────────────────────

    def save_task_state_time(self, project_id: int, state: str, data: Document) -> None:
        self._save(TASK_STATE_TIME, project_id, state, data)

    def get_task_state_time(self, project_id: int, state: str) -> list[AnalyticsRecord]:
        return self._get(TASK_STATE_TIME, project_id, state)

    # ── COMPLEXITY TASK TIME ──────────────────────────────

    def save_complexity_task_time(self, project_id: int, data: Document) -> None:
        self._save(COMPLEXITY_TASK_TIME, project_id, None, data)

    def get_complexity_task_time(self, project_id: int) -> list[AnalyticsRecord]:
        return self._get(COMPLEXITY_TASK_TIME, project_id, None)

    # ── TASK PRIORITY COUNT ───────────────────────────────

    def save_task_priority_count(self, project_id: int, state: str, data: Document) -> None:
        self._save(TASK_PRIORITY_COUNT, project_id, state, data)

    def get_task_priority_count(self, project_id: int, state: str) -> list[AnalyticsRecord]:
        return self._get(TASK_PRIORITY_COUNT, project_id, state)

    # ── ACTIVITY BY TASK ──────────────────────────────────

    def save_activity_by_task(self, project_id: int, state: str, data: Document) -> None:
        self._save(ACTIVITY_BY_TASK, project_id, state, data)

    def get_activity_by_task(self, project_id: int, state: str) -> list[AnalyticsRecord]:
        return self._get(ACTIVITY_BY_TASK, project_id, state)

    # ── DELETE ────────────────────────────────────────────

    def delete_all_by_project(self, project_id: int) -> int:
        """
        Remove every analytics row of a project from all five tables in one
        transaction. A failure on any table rolls back all of them.

        Returns:
            Total number of rows deleted.
        """
        conn = self.db.get_connection()
        table = None
        total = 0
        try:
            with conn.cursor() as cur:
                for table in ANALYTICS_TABLES:
                    cur.execute(
                        f"DELETE FROM {table.qualified} WHERE id_project = %s;",
                        (project_id,),
                    )
                    total += max(cur.rowcount, 0)
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            where = table.qualified if table else "analytics"
            logger.error(
                f"Failed to delete analytics of project #{project_id} "
                f"from {where}, rolled back: {e}"
            )
            raise StoreError(
                f"delete analytics of project #{project_id} from {where}: {e}"
            ) from e
        finally:
            self.db.release_connection(conn)
        logger.info(f"Deleted {total} analytics rows of project #{project_id}")
        return total

    # ── HELPERS ───────────────────────────────────────────

    def _save(self, table: AnalyticsTable, project_id: int, state: Optional[str], data: Document) -> None:
        try:
            payload = json.dumps(data, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{table.name} payload is not JSON-serializable: {e}") from e

        if table.keyed_by_state:
            sql = f"""
                INSERT INTO {table.qualified} (id_project, creation_time, state, data)
                VALUES (%s, NOW(), %s, %s);
            """
            params: tuple = (project_id, state, payload)
        else:
            sql = f"""
                INSERT INTO {table.qualified} (id_project, creation_time, data)
                VALUES (%s, NOW(), %s);
            """
            params = (project_id, payload)

        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
            conn.commit()
            logger.info(f"Saved {table.name} for project #{project_id}")
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to save {table.name} for project #{project_id}: {e}")
            raise StoreError(f"save {table.name} for project #{project_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def _get(self, table: AnalyticsTable, project_id: int, state: Optional[str]) -> list[AnalyticsRecord]:
        if table.keyed_by_state:
            sql = f"""
                SELECT id_project, creation_time, data, state
                FROM {table.qualified}
                WHERE id_project = %s AND state = %s
                ORDER BY creation_time DESC;
            """
            params: tuple = (project_id, state)
        else:
            sql = f"""
                SELECT id_project, creation_time, data
                FROM {table.qualified}
                WHERE id_project = %s
                ORDER BY creation_time DESC;
            """
            params = (project_id,)

        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [self._row_to_record(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to get {table.name} for project #{project_id}: {e}")
            raise StoreError(f"get {table.name} for project #{project_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    @staticmethod
    def _row_to_record(row: tuple) -> AnalyticsRecord:
        data = row[2]
        # json/jsonb columns arrive decoded; bytea payloads do not.
        if isinstance(data, (bytes, bytearray, memoryview)):
            data = json.loads(bytes(data))
        return AnalyticsRecord(
            project_id=row[0],
            creation_time=row[1],
            data=data,
            state=row[3] if len(row) > 3 else None,
        )
