import threading
from typing import Any, List, Optional, Sequence

import pytest

from mysql_interpreter.config import (
    DEFAULT_JDBC_DRIVER_NAME,
    DEFAULT_JDBC_URL,
    DEFAULT_JDBC_USER_NAME,
    DEFAULT_JDBC_USER_PASSWORD,
    DEFAULT_MAX_RESULT,
    MYSQL_SERVER_DRIVER_NAME,
    MYSQL_SERVER_MAX_RESULT,
    MYSQL_SERVER_PASSWORD,
    MYSQL_SERVER_URL,
    MYSQL_SERVER_USER,
)
from mysql_interpreter.interpreter import MySqlInterpreter


class FakeCursor:
    """Stand-in for a CursorResult; records whether it was closed."""

    def __init__(
        self,
        columns: Sequence[str] = (),
        rows: Sequence[Sequence[Any]] = (),
        returns_rows: bool = True,
        rowcount: int = -1,
        fail_at: Optional[int] = None,
        row_gate: Optional[threading.Event] = None,
        on_row: Optional[Any] = None,
    ):
        self.columns = list(columns)
        self.rows = [list(r) for r in rows]
        self.returns_rows = returns_rows
        self.rowcount = rowcount
        self.fail_at = fail_at
        self.row_gate = row_gate
        self.on_row = on_row
        self.closed = False
        self.fetched = 0

    def keys(self):
        return list(self.columns)

    def __iter__(self):
        for index, row in enumerate(self.rows):
            if self.closed:
                raise RuntimeError("This result object is closed.")
            if self.fail_at is not None and index == self.fail_at:
                raise RuntimeError("Lost connection to MySQL server during query")
            if self.on_row is not None:
                self.on_row(index)
            if self.row_gate is not None:
                self.row_gate.wait(timeout=5)
            self.fetched += 1
            yield row

    def close(self):
        self.closed = True


class FakeConnection:
    """Stand-in for a SQLAlchemy Connection that hands out a prepared cursor."""

    def __init__(self, prepared: Optional[dict] = None):
        self.prepared = prepared if prepared is not None else {}
        self.executed: List[str] = []
        self.execution_options: List[Optional[dict]] = []
        self.cursors: List[FakeCursor] = []
        self.closed = False
        self.error: Optional[Exception] = None

    def exec_driver_sql(self, statement: str, parameters=None, execution_options=None):
        if self.closed:
            raise RuntimeError("This Connection is closed")
        self.executed.append(statement)
        self.execution_options.append(execution_options)
        if self.error is not None:
            raise self.error
        cursor = FakeCursor(**self.prepared)
        self.cursors.append(cursor)
        return cursor

    def close(self):
        self.closed = True


class FakeConnectionFactory:
    """Counts acquisitions; every connection shares the same prepared result."""

    def __init__(self):
        self.prepared: dict = {}
        self.connections: List[FakeConnection] = []
        self.error: Optional[Exception] = None

    def __call__(self):
        if self.error is not None:
            raise self.error
        connection = FakeConnection(self.prepared)
        self.connections.append(connection)
        return connection

    @property
    def current(self) -> FakeConnection:
        return self.connections[-1]

    @property
    def all_cursors(self) -> List[FakeCursor]:
        return [c for conn in self.connections for c in conn.cursors]

    def prepare_result(self, **kwargs):
        self.prepared.clear()
        self.prepared.update(kwargs)


@pytest.fixture
def default_properties():
    return {
        MYSQL_SERVER_DRIVER_NAME: DEFAULT_JDBC_DRIVER_NAME,
        MYSQL_SERVER_URL: DEFAULT_JDBC_URL,
        MYSQL_SERVER_USER: DEFAULT_JDBC_USER_NAME,
        MYSQL_SERVER_PASSWORD: DEFAULT_JDBC_USER_PASSWORD,
        MYSQL_SERVER_MAX_RESULT: DEFAULT_MAX_RESULT,
    }


@pytest.fixture
def connection_factory():
    """Returns a factory producing FakeConnection objects."""
    return FakeConnectionFactory()


@pytest.fixture
def interpreter(default_properties, connection_factory):
    """Returns a MySqlInterpreter wired to the fake connection factory."""
    return MySqlInterpreter(default_properties, connection_factory=connection_factory)
