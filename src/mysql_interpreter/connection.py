"""
Connection lifecycle management.

The manager owns at most one live SQLAlchemy ``Connection``. Connections come
from an injected factory so tests can substitute a fake session. Every
cursor produced by :meth:`ConnectionManager.execute` is tracked until it is
released, which lets :meth:`ConnectionManager.close` release cursors leaked
by earlier queries before the connection itself goes away.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Sequence, runtime_checkable

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.pool import NullPool

from mysql_interpreter.common.errors import (
    ConnectivityError,
    InterpreterError,
    QueryCancelledError,
    QueryExecutionError,
    driver_message,
)
from mysql_interpreter.common.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class CursorHandle(Protocol):
    """The subset of ``sqlalchemy.engine.CursorResult`` the interpreter relies on."""

    closed: bool
    returns_rows: bool
    rowcount: int

    def keys(self) -> Sequence[str]:
        ...

    def __iter__(self) -> Iterator[Sequence[Any]]:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class ConnectionHandle(Protocol):
    """The subset of ``sqlalchemy.engine.Connection`` the interpreter relies on."""

    closed: bool

    def exec_driver_sql(
        self, statement: str, parameters: Any = None, execution_options: Optional[Dict[str, Any]] = None
    ) -> CursorHandle:
        ...

    def close(self) -> None:
        ...


ConnectionFactory = Callable[[], ConnectionHandle]

# Statements reach the driver verbatim, literal `%` included.
RAW_SQL_OPTIONS: Dict[str, Any] = {"no_parameters": True}


class EngineConnectionFactory:
    """
    Default connection factory backed by a SQLAlchemy engine.

    The engine is created lazily on first use so that a missing driver
    surfaces as a connectivity error from ``open()``. Pooling is disabled:
    closing a connection closes the underlying DBAPI connection.
    """

    def __init__(self, url: URL | str, **engine_kwargs: Any):
        self.url = url
        self.engine_kwargs = {"poolclass": NullPool, "isolation_level": "AUTOCOMMIT", **engine_kwargs}
        self._engine: Optional[Engine] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self.url, **self.engine_kwargs)
        return self._engine

    def __call__(self) -> ConnectionHandle:
        return self.engine.connect()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


class QueryExecution:
    """A statement/cursor pair owned by one execute call."""

    def __init__(self, sql: str):
        self.sql = sql
        self.cursor: Optional[CursorHandle] = None
        self.cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    @property
    def closed(self) -> bool:
        return self.cursor is None or self.cursor.closed

    @property
    def returns_rows(self) -> bool:
        return bool(self.cursor is not None and self.cursor.returns_rows)

    def columns(self) -> List[str]:
        return list(self.cursor.keys()) if self.returns_rows else []

    def rows(self) -> Iterator[Sequence[Any]]:
        return iter(self.cursor)

    def update_count(self) -> int:
        return self.cursor.rowcount if self.cursor is not None else -1

    def close(self) -> None:
        if self.cursor is not None and not self.cursor.closed:
            self.cursor.close()


class ConnectionManager:
    """
    Owns the single connection of an interpreter instance.

    ``open`` replaces any held connection, ``close`` releases the connection
    and every cursor still open, and ``cancel`` stops the in-flight query
    without touching the connection. Lifecycle transitions are serialized by
    a re-entrant lock; queries are serialized by a second lock so a cancel
    can be processed while a query is running.
    """

    def __init__(self, connection_factory: ConnectionFactory):
        self._factory = connection_factory
        self._connection: Optional[ConnectionHandle] = None
        self._executions: List[QueryExecution] = []
        self._current: Optional[QueryExecution] = None
        self._lock = threading.RLock()
        self._query_lock = threading.Lock()

    @property
    def connection(self) -> Optional[ConnectionHandle]:
        return self._connection

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._connection is not None and not self._connection.closed

    @property
    def open_executions(self) -> List[QueryExecution]:
        with self._lock:
            return [e for e in self._executions if not e.closed]

    def open(self) -> None:
        """Acquires a fresh connection, releasing the held one first."""
        with self._lock:
            if self._connection is not None:
                logger.debug("Releasing previous connection before reopening.")
                self._release()
            try:
                self._connection = self._factory()
            except InterpreterError:
                self._connection = None
                raise
            except Exception as exc:
                self._connection = None
                logger.error(f"Failed to acquire database connection: {exc}")
                raise ConnectivityError(
                    f"Cannot connect to database: {driver_message(exc)}"
                ) from exc
            logger.debug("Database connection acquired.")

    def close(self) -> None:
        """Releases every open cursor and the connection. Safe to call repeatedly."""
        with self._lock:
            self._release()

    def cancel(self) -> bool:
        """
        Cancels the in-flight query.

        Signals the executing thread, asks the driver to interrupt the running
        statement where it supports it, and closes the query's cursor. The
        connection stays open.

        Returns:
            True if a query was in flight.
        """
        with self._lock:
            execution = self._current
            if execution is None:
                logger.debug("Cancel requested with no query in flight.")
                return False
            logger.info(f"Cancelling query: {execution.sql}", extra={"query": execution.sql})
            execution.cancel_event.set()
            self._interrupt_driver()
            self._close_execution(execution)
            return True

    @contextmanager
    def execute(self, sql: str) -> Iterator[QueryExecution]:
        """
        Executes ``sql`` and yields its :class:`QueryExecution`.

        The cursor is closed when the block exits, whatever the outcome.
        A connection is opened on demand if none is held.

        Raises:
            ConnectivityError: If a connection cannot be acquired.
            QueryExecutionError: If the driver rejects the statement.
            QueryCancelledError: If the query was cancelled while executing.
        """
        with self._query_lock:
            execution = QueryExecution(sql)
            with self._lock:
                if not self.is_open:
                    self.open()
                connection = self._connection
                self._current = execution
            try:
                try:
                    cursor = connection.exec_driver_sql(sql, execution_options=RAW_SQL_OPTIONS)
                except Exception as exc:
                    if execution.cancelled:
                        raise QueryCancelledError("Query was cancelled.") from exc
                    raise QueryExecutionError(driver_message(exc)) from exc

                with self._lock:
                    execution.cursor = cursor
                    self._executions.append(execution)
                    if execution.cancelled:
                        raise QueryCancelledError("Query was cancelled.")
                yield execution
            finally:
                with self._lock:
                    if self._current is execution:
                        self._current = None
                    self._close_execution(execution)
                    if execution in self._executions:
                        self._executions.remove(execution)

    def _release(self) -> None:
        if self._current is not None:
            self._current.cancel_event.set()
        for execution in list(self._executions):
            self._close_execution(execution)
        self._executions.clear()

        connection, self._connection = self._connection, None
        if connection is not None and not connection.closed:
            connection.close()
            logger.debug("Database connection closed.")

    def _close_execution(self, execution: QueryExecution) -> None:
        try:
            execution.close()
        except Exception as exc:
            logger.warning(f"Failed to close cursor for query '{execution.sql}': {exc}")

    def _interrupt_driver(self) -> None:
        connection = self._connection
        if connection is None or connection.closed:
            return
        try:
            proxied = getattr(connection, "connection", None)
            dbapi_connection = getattr(proxied, "dbapi_connection", None)
            for name in ("interrupt", "cancel"):
                interrupt = getattr(dbapi_connection, name, None)
                if callable(interrupt):
                    interrupt()
                    return
        except Exception as exc:
            logger.warning(f"Driver interrupt failed: {exc}")
