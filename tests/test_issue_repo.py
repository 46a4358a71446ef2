from datetime import datetime, timezone
from decimal import Decimal

import psycopg2
import pytest
from psycopg2.errors import ForeignKeyViolation, UniqueViolation

from db.errors import AlreadyExistsError, NotFoundError, StoreError, ValidationError
from models.issue import Issue
from repositories.filters import ListFilter
from repositories.issue_repo import IssueRepository

CREATED = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_issue(**overrides) -> Issue:
    fields = dict(id=7777, project_id=9999, author_id=8888, key="TEST-7777", status="Open", created_time=CREATED)
    fields.update(overrides)
    return Issue(**fields)


@pytest.fixture
def repo(fake_db):
    return IssueRepository(fake_db)


def test_create_binds_every_column_in_order(repo, fake_db):
    issue = make_issue(assignee_id=8888, time_spent=120)
    repo.create(issue)
    sql = fake_db.last_sql()
    assert sql.startswith("INSERT INTO raw.issue (id, project_id, author_id, assignee_id, key,")
    assert sql.count("%s") == 14
    assert fake_db.last_params() == issue.as_row()


def test_create_requires_key(repo, fake_db):
    with pytest.raises(ValidationError):
        repo.create(make_issue(key=""))
    assert fake_db.borrowed == 0


def test_create_duplicate(repo, fake_db):
    fake_db.cursor.execute.side_effect = UniqueViolation()
    with pytest.raises(AlreadyExistsError):
        repo.create(make_issue())


def test_create_unknown_project_is_store_error(repo, fake_db):
    fake_db.cursor.execute.side_effect = ForeignKeyViolation()
    with pytest.raises(StoreError):
        repo.create(make_issue(project_id=1))
    fake_db.conn.rollback.assert_called_once()


def test_upsert_overwrites_every_non_key_column(repo, fake_db):
    repo.upsert(make_issue())
    sql = fake_db.last_sql()
    assert "ON CONFLICT (id) DO UPDATE SET" in sql
    for col in Issue.columns()[1:]:
        assert f"{col} = EXCLUDED.{col}" in sql
    assert " id = EXCLUDED.id" not in sql


def test_get_by_id_maps_nullable_columns(repo, fake_db):
    row = (7777, 9999, 8888, None, "TEST-7777", None, None, None, None, None, CREATED, None, None, None)
    fake_db.cursor.fetchone.return_value = row
    issue = repo.get_by_id(7777)
    assert issue.assignee_id is None
    assert issue.created_time == CREATED
    assert issue.status is None


def test_get_by_id_missing(repo, fake_db):
    fake_db.cursor.fetchone.return_value = None
    assert repo.get_by_id(1) is None


def test_get_by_project_id_newest_first(repo, fake_db):
    fake_db.cursor.fetchall.return_value = [make_issue().as_row()]
    issues = repo.get_by_project_id(9999)
    assert issues == [make_issue()]
    # server default for DESC: undated issues sort first
    assert fake_db.last_sql().endswith("WHERE project_id = %s ORDER BY created_time DESC, id;")
    assert fake_db.last_params() == (9999,)


def test_get_all_and_list_order_by_id(repo, fake_db):
    fake_db.cursor.fetchall.return_value = []
    repo.get_all()
    assert fake_db.last_sql().endswith("ORDER BY id;")
    repo.list(ListFilter(search="TEST"))
    assert "WHERE key ILIKE %s ORDER BY id LIMIT %s OFFSET %s;" in fake_db.last_sql()


class TestAggregates:
    def test_counts(self, repo, fake_db):
        fake_db.cursor.fetchone.return_value = (4,)
        assert repo.count() == 4
        assert repo.count_by_project(9999) == 4
        assert fake_db.last_params() == (9999,)

    def test_open_count_treats_null_status_as_open(self, repo, fake_db):
        fake_db.cursor.fetchone.return_value = (1,)
        assert repo.get_open_count_by_project(9999) == 1
        sql = fake_db.last_sql()
        assert sql.count("IS DISTINCT FROM %s") == 2
        assert fake_db.last_params() == (9999, "Closed", "Resolved")

    def test_closed_count(self, repo, fake_db):
        fake_db.cursor.fetchone.return_value = (0,)
        assert repo.get_closed_count_by_project(9999) == 0
        assert "status IN %s" in fake_db.last_sql()
        assert fake_db.last_params() == (9999, ("Closed", "Resolved"))

    def test_average_time_in_hours(self, repo, fake_db):
        fake_db.cursor.fetchone.return_value = (Decimal("36.5"),)
        assert repo.get_average_time_by_project(9999) == 36.5
        assert "/ 3600" in fake_db.last_sql()

    def test_average_time_without_closed_issues_is_none(self, repo, fake_db):
        fake_db.cursor.fetchone.return_value = (None,)
        assert repo.get_average_time_by_project(9999) is None

    def test_count_failure(self, repo, fake_db):
        fake_db.cursor.execute.side_effect = psycopg2.OperationalError("gone")
        with pytest.raises(StoreError, match="count open issues of project #9999"):
            repo.get_open_count_by_project(9999)


def test_update_sets_all_columns_and_filters_by_id(repo, fake_db):
    issue = make_issue(status="Closed")
    repo.update(issue)
    sql = fake_db.last_sql()
    assert sql.startswith("UPDATE raw.issue SET project_id = %s,")
    assert sql.endswith("WHERE id = %s;")
    params = fake_db.last_params()
    assert params[-1] == 7777
    assert "Closed" in params


def test_update_missing(repo, fake_db):
    fake_db.cursor.rowcount = 0
    with pytest.raises(NotFoundError):
        repo.update(make_issue())


def test_delete_missing(repo, fake_db):
    fake_db.cursor.rowcount = 0
    with pytest.raises(NotFoundError):
        repo.delete(7777)
