"""Shared fixtures: a Database stand-in whose connection and cursor are mocks."""

from unittest.mock import MagicMock

import pytest


class FakeDatabase:
    """Duck-types db.connection.Database for repository tests."""

    def __init__(self):
        self.conn = MagicMock(name="conn")
        self.cursor = MagicMock(name="cursor")
        self.conn.cursor.return_value.__enter__.return_value = self.cursor
        self.cursor.rowcount = 1
        self.borrowed = 0
        self.released = 0

    def get_connection(self):
        self.borrowed += 1
        return self.conn

    def release_connection(self, conn) -> None:
        assert conn is self.conn
        self.released += 1

    def executed(self) -> list[tuple]:
        """(sql, params) of every cursor.execute call, in order."""
        calls = []
        for call in self.cursor.execute.call_args_list:
            args = call.args
            calls.append((args[0], args[1] if len(args) > 1 else None))
        return calls

    def last_sql(self) -> str:
        return " ".join(self.executed()[-1][0].split())

    def last_params(self):
        return self.executed()[-1][1]


@pytest.fixture
def fake_db():
    db = FakeDatabase()
    yield db
    assert db.borrowed == db.released, "every borrowed connection must be released"
