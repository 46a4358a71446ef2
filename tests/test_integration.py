"""
End-to-end checks against a live PostgreSQL.

Skipped unless RUN_DB_TESTS=1; connection settings come from the usual
DB_* environment variables. Every row written uses ids in the 9xxxxx range
and is removed again afterwards.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

from config import DBConfig
from db.connection import Database
from db.errors import AlreadyExistsError, NotFoundError, StoreError
from db.init_db import create_tables
from models.author import Author
from models.issue import Issue
from models.project import Project
from models.status_change import StatusChange
from repositories.analytics_repo import ANALYTICS_TABLES, AnalyticsRepository
from repositories.author_repo import AuthorRepository
from repositories.filters import ListFilter
from repositories.issue_repo import IssueRepository
from repositories.project_repo import ProjectRepository
from repositories.status_change_repo import StatusChangeRepository

pytestmark = pytest.mark.skipif(
    os.environ.get("RUN_DB_TESTS") != "1", reason="set RUN_DB_TESTS=1 to run against PostgreSQL"
)

PROJECT_ID = 909999
OTHER_PROJECT_ID = 909998
AUTHOR_ID = 908888
ISSUE_ID = 907777
T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _purge(db: Database) -> None:
    conn = db.get_connection()
    try:
        with conn.cursor() as cur:
            for table in ANALYTICS_TABLES:
                cur.execute(
                    f"DELETE FROM {table.qualified} WHERE id_project IN (%s, %s);",
                    (PROJECT_ID, OTHER_PROJECT_ID),
                )
            cur.execute(
                "DELETE FROM raw.status_changes WHERE issue_id IN "
                "(SELECT id FROM raw.issue WHERE project_id IN (%s, %s));",
                (PROJECT_ID, OTHER_PROJECT_ID),
            )
            cur.execute("DELETE FROM raw.issue WHERE project_id IN (%s, %s);", (PROJECT_ID, OTHER_PROJECT_ID))
            cur.execute("DELETE FROM raw.project WHERE id IN (%s, %s);", (PROJECT_ID, OTHER_PROJECT_ID))
            cur.execute("DELETE FROM raw.author WHERE id BETWEEN %s AND %s;", (AUTHOR_ID, AUTHOR_ID + 10))
        conn.commit()
    finally:
        db.release_connection(conn)


@pytest.fixture(scope="module")
def db():
    database = Database.connect(DBConfig.from_env())
    create_tables(database)
    yield database
    database.close()


@pytest.fixture(autouse=True)
def clean(db):
    _purge(db)
    yield
    _purge(db)


@pytest.fixture
def seeded(db):
    ProjectRepository(db).create(Project(id=PROJECT_ID, title="Test Project"))
    AuthorRepository(db).create(Author(id=AUTHOR_ID, name="Test Author"))
    IssueRepository(db).create(Issue(
        id=ISSUE_ID, project_id=PROJECT_ID, author_id=AUTHOR_ID, key="TEST-7777", status="Open",
    ))


def test_create_then_get_round_trips(db):
    repo = ProjectRepository(db)
    project = Project(id=PROJECT_ID, title="Test Project")
    repo.create(project)
    assert repo.get_by_id(PROJECT_ID) == project


def test_create_duplicate_fails_but_upsert_is_idempotent(db):
    repo = ProjectRepository(db)
    repo.create(Project(id=PROJECT_ID, title="First"))
    with pytest.raises(AlreadyExistsError):
        repo.create(Project(id=PROJECT_ID, title="Second"))
    for _ in range(3):
        repo.upsert(Project(id=PROJECT_ID, title="Upserted"))
    assert repo.get_by_id(PROJECT_ID) == Project(id=PROJECT_ID, title="Upserted")


def test_delete_then_lookup_is_none(db):
    repo = AuthorRepository(db)
    repo.create(Author(id=AUTHOR_ID, name="Gone Soon"))
    repo.delete(AUTHOR_ID)
    assert repo.get_by_id(AUTHOR_ID) is None
    with pytest.raises(NotFoundError):
        repo.delete(AUTHOR_ID)


def test_author_search_is_case_insensitive(db):
    repo = AuthorRepository(db)
    repo.create(Author(id=AUTHOR_ID, name="Leo Tolstoy"))
    repo.create(Author(id=AUTHOR_ID + 1, name="Alexei TOLSTOY"))
    repo.create(Author(id=AUTHOR_ID + 2, name="Fyodor Dostoevsky"))
    found = repo.list(ListFilter(search="tolstoy"))
    names = [a.name for a in found]
    assert "Leo Tolstoy" in names and "Alexei TOLSTOY" in names
    assert all("tolstoy" in n.lower() for n in names)
    assert names == sorted(names)


def test_issue_upsert_is_idempotent(db, seeded):
    repo = IssueRepository(db)
    issue = Issue(
        id=ISSUE_ID, project_id=PROJECT_ID, author_id=AUTHOR_ID, assignee_id=AUTHOR_ID, key="TEST-7777",
        summary="s", status="In Progress", created_time=T0, time_spent=60,
    )
    repo.upsert(issue)
    once = repo.get_by_id(ISSUE_ID)
    repo.upsert(issue)
    repo.upsert(issue)
    assert repo.get_by_id(ISSUE_ID) == once
    assert once.closed_time is None


def test_open_closed_counts_flip_when_issue_closes(db, seeded):
    repo = IssueRepository(db)
    assert repo.get_open_count_by_project(PROJECT_ID) == 1
    assert repo.get_closed_count_by_project(PROJECT_ID) == 0

    issue = repo.get_by_id(ISSUE_ID)
    issue.status = "Closed"
    repo.update(issue)

    assert repo.get_open_count_by_project(PROJECT_ID) == 0
    assert repo.get_closed_count_by_project(PROJECT_ID) == 1


def test_open_plus_closed_equals_total_with_null_status(db, seeded):
    repo = IssueRepository(db)
    repo.create(Issue(id=ISSUE_ID + 1, project_id=PROJECT_ID, author_id=AUTHOR_ID, key="TEST-2"))
    repo.create(Issue(id=ISSUE_ID + 2, project_id=PROJECT_ID, author_id=AUTHOR_ID, key="TEST-3", status="Resolved"))
    opened = repo.get_open_count_by_project(PROJECT_ID)
    closed = repo.get_closed_count_by_project(PROJECT_ID)
    assert (opened, closed) == (2, 1)
    assert opened + closed == repo.count_by_project(PROJECT_ID)


def test_average_time(db, seeded):
    repo = IssueRepository(db)
    assert repo.get_average_time_by_project(PROJECT_ID) is None
    repo.create(Issue(
        id=ISSUE_ID + 1, project_id=PROJECT_ID, author_id=AUTHOR_ID, key="TEST-2",
        created_time=T0, closed_time=T0 + timedelta(hours=10),
    ))
    repo.create(Issue(
        id=ISSUE_ID + 2, project_id=PROJECT_ID, author_id=AUTHOR_ID, key="TEST-3",
        created_time=T0, closed_time=T0 + timedelta(hours=20),
    ))
    assert repo.get_average_time_by_project(PROJECT_ID) == pytest.approx(15.0)


def test_bulk_insert_is_all_or_nothing(db, seeded):
    repo = StatusChangeRepository(db)
    repo.bulk_insert([])
    assert repo.get_by_issue_id(ISSUE_ID) == []

    broken = [
        StatusChange(ISSUE_ID, AUTHOR_ID, T0, "Open", "In Progress"),
        StatusChange(ISSUE_ID + 404, AUTHOR_ID, T0, "Open", "Done"),
    ]
    with pytest.raises(StoreError):
        repo.bulk_insert(broken)
    assert repo.get_by_issue_id(ISSUE_ID) == []

    good = [
        StatusChange(ISSUE_ID, AUTHOR_ID, T0 + timedelta(hours=2), "In Progress", "Done"),
        StatusChange(ISSUE_ID, AUTHOR_ID, T0, "Open", "In Progress"),
    ]
    assert repo.bulk_insert(good) == 2
    history = repo.get_by_issue_id(ISSUE_ID)
    assert [c.to_status for c in history] == ["In Progress", "Done"]
    assert len(repo.get_by_project_id(PROJECT_ID)) == 2
    assert repo.delete_by_issue_id(ISSUE_ID) == 2
    with pytest.raises(NotFoundError):
        repo.delete_by_issue_id(ISSUE_ID)


def test_analytics_newest_first_and_delete_scoped_to_project(db):
    repo = AnalyticsRepository(db)
    repo.save_open_task_time(PROJECT_ID, {"run": 1})
    repo.save_open_task_time(PROJECT_ID, {"run": 2})
    repo.save_task_state_time(PROJECT_ID, "Open", {"bins": [1, 2]})
    repo.save_complexity_task_time(PROJECT_ID, [1, 2, 3])
    repo.save_task_priority_count(PROJECT_ID, "Open", {"High": 3})
    repo.save_activity_by_task(PROJECT_ID, "Open", {"nested": {"x": None}})
    repo.save_open_task_time(OTHER_PROJECT_ID, {"keep": True})

    runs = [r.data["run"] for r in repo.get_open_task_time(PROJECT_ID)]
    assert runs == [2, 1]
    assert repo.get_activity_by_task(PROJECT_ID, "Open")[0].data == {"nested": {"x": None}}
    assert repo.get_task_state_time(PROJECT_ID, "Closed") == []

    assert repo.delete_all_by_project(PROJECT_ID) == 6
    assert repo.get_open_task_time(PROJECT_ID) == []
    assert repo.get_task_priority_count(PROJECT_ID, "Open") == []
    assert repo.get_complexity_task_time(PROJECT_ID) == []
    assert repo.get_open_task_time(OTHER_PROJECT_ID)[0].data == {"keep": True}
