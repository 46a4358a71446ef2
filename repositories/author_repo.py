"""
repositories/author_repo.py
---------------------------
Data access layer for issue authors.
All SQL queries related to the `raw.author` table live here.
"""

from typing import Optional

import psycopg2
from psycopg2.errors import UniqueViolation

from db.connection import Database
from db.errors import AlreadyExistsError, NotFoundError, StoreError
from models.author import Author
from repositories.filters import ListFilter, build_list_query
from utils.logger import get_logger

logger = get_logger(__name__)


class AuthorRepository:
    """Repository for CRUD operations on the raw.author table."""

    def __init__(self, db: Database):
        self.db = db

    # ── CREATE ────────────────────────────────────────────

    def create(self, author: Author) -> Author:
        """
        Insert a new author.

        Raises:
            ValidationError: If the name is empty or the id is zero.
            AlreadyExistsError: If an author with this id already exists.
            StoreError: For any other database failure.
        """
        author.validate()
        sql = "INSERT INTO raw.author (id, name) VALUES (%s, %s);"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (author.id, author.name))
            conn.commit()
            logger.info(f"Created author #{author.id}")
            return author
        except UniqueViolation as e:
            conn.rollback()
            logger.warning(f"Author #{author.id} already exists")
            raise AlreadyExistsError(f"author #{author.id} already exists") from e
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to create author #{author.id}: {e}")
            raise StoreError(f"create author #{author.id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def upsert(self, author: Author) -> Author:
        """Insert the author, or overwrite the name if the id already exists."""
        sql = """
            INSERT INTO raw.author (id, name)
            VALUES (%s, %s)
            ON CONFLICT (id) DO UPDATE SET name = EXCLUDED.name;
        """
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (author.id, author.name))
            conn.commit()
            logger.info(f"Upserted author #{author.id}")
            return author
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to upsert author #{author.id}: {e}")
            raise StoreError(f"upsert author #{author.id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def get_or_create(self, author_id: int, name: str) -> Author:
        """
        Insert an author if they don't exist, or refresh the stored name.
        Uses PostgreSQL's ON CONFLICT (upsert) for atomicity.

        Returns:
            The author as stored after the write.
        """
        Author(id=author_id, name=name).validate()
        sql = """
            INSERT INTO raw.author (id, name)
            VALUES (%s, %s)
            ON CONFLICT (id) DO UPDATE SET name = EXCLUDED.name
            RETURNING id, name;
        """
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (author_id, name))
                row = cur.fetchone()
            conn.commit()
            return self._row_to_author(row)
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to get or create author #{author_id}: {e}")
            raise StoreError(f"get or create author #{author_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, author_id: int) -> Optional[Author]:
        """
        Fetch an author by id.

        Returns:
            An Author, or None if not found.
        """
        sql = "SELECT id, name FROM raw.author WHERE id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (author_id,))
                row = cur.fetchone()
                return self._row_to_author(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to get author #{author_id}: {e}")
            raise StoreError(f"get author #{author_id}: {e}") from e
        finally:
            self.db.release_connection(conn)

    def get_by_name(self, name: str) -> Optional[Author]:
        """
        Fetch an author by exact name. Names are not unique; when several
        authors share one, any of them may be returned.
        """
        sql = "SELECT id, name FROM raw.author WHERE name = %s LIMIT 1;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (name,))
                row = cur.fetchone()
                return self._row_to_author(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to get author by name {name!r}: {e}")
            raise StoreError(f"get author by name: {e}") from e
        finally:
            self.db.release_connection(conn)

    def count(self) -> int:
        sql = "SELECT COUNT(*) FROM raw.author;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql)
                return int(cur.fetchone()[0])
        except psycopg2.Error as e:
            logger.error(f"Failed to count authors: {e}")
            raise StoreError(f"count authors: {e}") from e
        finally:
            self.db.release_connection(conn)

    def list(self, list_filter: Optional[ListFilter] = None) -> list[Author]:
        """
        One page of authors ordered by name.

        Args:
            list_filter: Limit (default 100), offset, and an optional
                case-insensitive substring to match against the name.
        """
        sql, params = build_list_query(
            "SELECT id, name FROM raw.author", list_filter, "name", "name"
        )
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [self._row_to_author(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to list authors: {e}")
            raise StoreError(f"list authors: {e}") from e
        finally:
            self.db.release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, author: Author) -> Author:
        """
        Rename an existing author.

        Raises:
            ValidationError: If the name is empty or the id is zero.
            NotFoundError: If no author has this id.
        """
        author.validate()
        sql = "UPDATE raw.author SET name = %s WHERE id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (author.name, author.id))
                updated = cur.rowcount > 0
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to update author #{author.id}: {e}")
            raise StoreError(f"update author #{author.id}: {e}") from e
        finally:
            self.db.release_connection(conn)
        if not updated:
            raise NotFoundError(f"author #{author.id} not found")
        logger.info(f"Updated author #{author.id}")
        return author

    # ── DELETE ────────────────────────────────────────────

    def delete(self, author_id: int) -> None:
        """
        Delete an author by id.

        Raises:
            NotFoundError: If no author has this id.
        """
        sql = "DELETE FROM raw.author WHERE id = %s;"
        conn = self.db.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (author_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to delete author #{author_id}: {e}")
            raise StoreError(f"delete author #{author_id}: {e}") from e
        finally:
            self.db.release_connection(conn)
        if not deleted:
            raise NotFoundError(f"author #{author_id} not found")
        logger.info(f"Deleted author #{author_id}")

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_author(row: tuple) -> Author:
        return Author(id=row[0], name=row[1])
