"""
db/init_db.py
-------------
Creates the `raw` and `analytics` schemas and their tables if they do not
already exist. Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

import psycopg2

from db.connection import Database
from db.errors import StoreError
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
CREATE SCHEMA IF NOT EXISTS raw;
CREATE SCHEMA IF NOT EXISTS analytics;

-- Source-of-truth entities; ids are assigned by the tracker, not by us
CREATE TABLE IF NOT EXISTS raw.project (
    id              INTEGER PRIMARY KEY,
    title           TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS raw.author (
    id              INTEGER PRIMARY KEY,
    name            TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS raw.issue (
    id              INTEGER PRIMARY KEY,
    project_id      INTEGER NOT NULL REFERENCES raw.project(id) ON DELETE CASCADE,
    author_id       INTEGER NOT NULL REFERENCES raw.author(id),
    assignee_id     INTEGER REFERENCES raw.author(id),
    key             TEXT NOT NULL,
    summary         TEXT,
    description     TEXT,
    type            TEXT,
    priority        TEXT,
    status          TEXT,
    created_time    TIMESTAMPTZ,
    closed_time     TIMESTAMPTZ,
    updated_time    TIMESTAMPTZ,
    time_spent      INTEGER
);

CREATE TABLE IF NOT EXISTS raw.status_changes (
    issue_id        INTEGER NOT NULL REFERENCES raw.issue(id) ON DELETE CASCADE,
    author_id       INTEGER NOT NULL REFERENCES raw.author(id),
    change_time     TIMESTAMPTZ NOT NULL,
    from_status     TEXT NOT NULL,
    to_status       TEXT NOT NULL
);

-- Precomputed analytics payloads, append-only
CREATE TABLE IF NOT EXISTS analytics.open_task_time (
    id_project      INTEGER NOT NULL,
    creation_time   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    data            JSONB NOT NULL
);

CREATE TABLE IF NOT EXISTS analytics.task_state_time (
    id_project      INTEGER NOT NULL,
    creation_time   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    state           TEXT NOT NULL,
    data            JSONB NOT NULL
);

CREATE TABLE IF NOT EXISTS analytics.complexity_task_time (
    id_project      INTEGER NOT NULL,
    creation_time   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    data            JSONB NOT NULL
);

CREATE TABLE IF NOT EXISTS analytics.task_priority_count (
    id_project      INTEGER NOT NULL,
    creation_time   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    state           TEXT NOT NULL,
    data            JSONB NOT NULL
);

CREATE TABLE IF NOT EXISTS analytics.activity_by_task (
    id_project      INTEGER NOT NULL,
    creation_time   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    state           TEXT NOT NULL,
    data            JSONB NOT NULL
);

-- Indexes for the lookups the repositories run
CREATE INDEX IF NOT EXISTS idx_issue_project ON raw.issue(project_id);
CREATE INDEX IF NOT EXISTS idx_status_changes_issue ON raw.status_changes(issue_id, change_time);
CREATE INDEX IF NOT EXISTS idx_open_task_time_project ON analytics.open_task_time(id_project, creation_time);
CREATE INDEX IF NOT EXISTS idx_task_state_time_project ON analytics.task_state_time(id_project, state, creation_time);
CREATE INDEX IF NOT EXISTS idx_complexity_task_time_project ON analytics.complexity_task_time(id_project, creation_time);
CREATE INDEX IF NOT EXISTS idx_task_priority_count_project ON analytics.task_priority_count(id_project, state, creation_time);
CREATE INDEX IF NOT EXISTS idx_activity_by_task_project ON analytics.activity_by_task(id_project, state, creation_time);
"""


def create_tables(db: Database) -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    conn = db.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
        logger.info("Database schema initialized successfully.")
    except psycopg2.Error as e:
        conn.rollback()
        logger.error(f"Failed to initialize schema: {e}")
        raise StoreError(f"create tables: {e}") from e
    finally:
        db.release_connection(conn)


if __name__ == "__main__":
    with Database.connect() as database:
        create_tables(database)
    logger.info("Database schema created successfully.")
