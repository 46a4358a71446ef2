from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from psycopg2 import errors
import pytest

from db.errors import NotFoundError, StoreError, ValidationError
from models.status_change import StatusChange
from repositories.status_change_repo import StatusChangeRepository

T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


def change(minutes: int = 0, issue_id: int = 7777) -> StatusChange:
    return StatusChange(issue_id, 8888, T0 + timedelta(minutes=minutes), "Open", "In Progress")


@pytest.fixture
def repo(fake_db):
    return StatusChangeRepository(fake_db)


def test_create(repo, fake_db):
    repo.create(change())
    assert fake_db.last_sql().startswith("INSERT INTO raw.status_changes")
    assert fake_db.last_params() == (7777, 8888, T0, "Open", "In Progress")
    fake_db.conn.commit.assert_called_once()


def test_get_by_issue_id_is_chronological(repo, fake_db):
    fake_db.cursor.fetchall.return_value = [change(0).as_row(), change(5).as_row()]
    history = repo.get_by_issue_id(7777)
    assert [c.change_time for c in history] == [T0, T0 + timedelta(minutes=5)]
    assert fake_db.last_sql().endswith("ORDER BY change_time ASC;")


def test_get_by_project_id_joins_issue(repo, fake_db):
    fake_db.cursor.fetchall.return_value = []
    assert repo.get_by_project_id(9999) == []
    sql = fake_db.last_sql()
    assert "JOIN raw.issue i ON sc.issue_id = i.id" in sql
    assert "WHERE i.project_id = %s" in sql


class TestBulkInsert:
    def test_empty_batch_is_noop(self, repo, fake_db):
        assert repo.bulk_insert([]) == 0
        assert fake_db.borrowed == 0

    def test_batch_commits_once(self, repo, fake_db):
        batch = [change(i) for i in range(3)]
        with patch("repositories.status_change_repo.extras.execute_batch") as execute_batch:
            assert repo.bulk_insert(batch) == 3
        args = execute_batch.call_args.args
        assert args[0] is fake_db.cursor
        assert args[2] == [c.as_row() for c in batch]
        fake_db.conn.commit.assert_called_once()
        fake_db.conn.rollback.assert_not_called()

    def test_mid_batch_failure_rolls_back_everything(self, repo, fake_db):
        batch = [change(0), change(1, issue_id=404)]
        with patch(
            "repositories.status_change_repo.extras.execute_batch",
            side_effect=errors.ForeignKeyViolation(),
        ):
            with pytest.raises(StoreError, match="bulk insert"):
                repo.bulk_insert(batch)
        fake_db.conn.rollback.assert_called_once()
        fake_db.conn.commit.assert_not_called()

    def test_invalid_record_rejected_before_any_write(self, repo, fake_db):
        with pytest.raises(ValidationError):
            repo.bulk_insert([change(0), change(1, issue_id=0)])
        assert fake_db.borrowed == 0


def test_delete_by_issue_id_returns_count(repo, fake_db):
    fake_db.cursor.rowcount = 2
    assert repo.delete_by_issue_id(7777) == 2


def test_delete_by_issue_id_without_history(repo, fake_db):
    fake_db.cursor.rowcount = 0
    with pytest.raises(NotFoundError):
        repo.delete_by_issue_id(7777)
