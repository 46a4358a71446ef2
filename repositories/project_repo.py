"""
repositories/project_repo.py
----------------------------
Data access layer for tracker projects.
All SQL queries related to the `raw.project` table live here.
"""

from typing import Optional

import psycopg2
from psycopg2.errors import UniqueViolation

from db.connection import Database
from db.errors import AlreadyExistsError, NotFoundError, StoreError
from models.project import Project
from repositories.filters import ListFilter, build_list_query
from utils.logger import get_logger

logger = get_logger(__name__)


class ProjectRepository:
    """Repository for CRUD operations on the raw.project table."""

    def __init__(self, db: Database):
        self.db = db

    # ── CREATE ────────────────────────────────────────────

    def create(self, project: Project) -> Project:
        """
        Insert a new project.

        Raises:
            ValidationError: If the id is zero or the title is empty.
            AlreadyExistsError: If a project with this id already exists.
            StoreError: For any other database failure.
        """
        project.validate()
        sql = "INSERT INTO raw.project (id, title) VALUES (%s, %s);"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (project.id, project.title))
            conn.commit()
            logger.info(f"Created project #{project.id}")
            return project
        except UniqueViolation as e:
            conn.rollback()
            logger.warning(f"Project #{project.id} already exists")
            raise AlreadyExistsError(f"project #{project.id} already exists") from e
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to create project #{project.id}: {e}")
            raise StoreError(f"create project #{project.id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def upsert(self, project: Project) -> Project:
        """Insert the project, or overwrite its title if the id already exists."""
        sql = """
            INSERT INTO raw.project (id, title)
            VALUES (%s, %s)
            ON CONFLICT (id) DO UPDATE SET title = EXCLUDED.title;
        """
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (project.id, project.title))
            conn.commit()
            logger.info(f"Upserted project #{project.id}")
            return project
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to upsert project #{project.id}: {e}")
            raise StoreError(f"upsert project #{project.id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, project_id: int) -> Optional[Project]:
        """
        Fetch a single project.

        Returns:
            A Project, or None if no project has this id.
        """
        sql = "SELECT id, title FROM raw.project WHERE id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (project_id,))
                row = cur.fetchone()
                return self._row_to_project(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to get project #{project_id}: {e}")
            raise StoreError(f"get project #{project_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def get_all(self) -> list[Project]:
        """Every project, ordered by id."""
        sql = "SELECT id, title FROM raw.project ORDER BY id;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql)
                return [self._row_to_project(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to list projects: {e}")
            raise StoreError(f"get all projects: {e}") from e
        finally:
            self.db.release_connection(conn)

    def list(self, list_filter: Optional[ListFilter] = None) -> list[Project]:
        """One page of projects ordered by id, optionally searched by title."""
        sql, params = build_list_query(
            "SELECT id, title FROM raw.project", list_filter, "title", "id"
        )
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [self._row_to_project(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to list projects: {e}")
            raise StoreError(f"list projects: {e}") from e
        finally:
            self.db.release_connection(conn)

    def count(self) -> int:
        sql = "SELECT COUNT(*) FROM raw.project;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql)
                return int(cur.fetchone()[0])
        except psycopg2.Error as e:
            logger.error(f"Failed to count projects: {e}")
            raise StoreError(f"count projects: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, project: Project) -> Project:
        """
        Overwrite the title of an existing project.

        Raises:
            NotFoundError: If no project has this id.
        """
        project.validate()
        sql = "UPDATE raw.project SET title = %s WHERE id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (project.title, project.id))
                updated = cur.rowcount > 0
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to update project #{project.id}: {e}")
            raise StoreError(f"update project #{project.id}: {e}") from e
        finally:
            self.db.release_connection(conn)
        if not updated:
            raise NotFoundError(f"project #{project.id} not found")
        logger.info(f"Updated project #{project.id}")
        return project

    # ── DELETE ────────────────────────────────────────────

    def delete(self, project_id: int) -> None:
        """
        Delete a project by id.

        Raises:
            NotFoundError: If no project has this id.
        """
        sql = "DELETE FROM raw.project WHERE id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (project_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to delete project #{project_id}: {e}")
            raise StoreError(f"delete project #{project_id}: {e}") from e
        finally:
            self.db.release_connection(conn)
        if not deleted:
            raise NotFoundError(f"project #{project_id} not found")
        logger.info(f"Deleted project #{project_id}")

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_project(row: tuple) -> Project:
        return Project(id=row[0], title=row[1])
