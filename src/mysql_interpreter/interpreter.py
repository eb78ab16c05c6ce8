from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Set, Tuple

from mysql_interpreter.common.errors import (
    ErrorCode,
    InterpreterError,
    QueryCancelledError,
    QueryExecutionError,
    driver_message,
)
from mysql_interpreter.common.logger import get_logger, paragraph_context, query_fields
from mysql_interpreter.completion import SqlCompleter
from mysql_interpreter.config import (
    MYSQL_SERVER_MAX_RESULT,
    InterpreterProperties,
    build_connection_url,
    merge_with_defaults,
    parse_max_result,
)
from mysql_interpreter.connection import (
    ConnectionFactory,
    ConnectionHandle,
    ConnectionManager,
    EngineConnectionFactory,
    QueryExecution,
)
from mysql_interpreter.formatter import format_result, format_update_count, is_explain_query
from mysql_interpreter.interfaces import (
    Interpreter,
    InterpreterContext,
    InterpreterResult,
    Type,
)

logger = get_logger(__name__)


class QueryState(str, Enum):
    """Lifecycle of a single interpret call."""
    IDLE = "IDLE"
    EXECUTING = "EXECUTING"
    ITERATING = "ITERATING"
    DONE = "DONE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class MySqlInterpreter(Interpreter):
    """
    Runs SQL against a MySQL server and renders the rows as tab separated text.

    Properties are merged over ``DEFAULT_PROPERTIES`` once, at construction.
    The row cap is parsed again on every query so it can be changed between
    calls.

    Args:
        properties: Flat mapping of interpreter properties.
        connection_factory: Callable returning a new connection. Defaults to a
            SQLAlchemy engine built from the properties.
    """

    def __init__(
        self,
        properties: Optional[Mapping[str, Any]] = None,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        super().__init__(merge_with_defaults(properties))
        self.settings = InterpreterProperties.from_mapping(self._properties)
        if connection_factory is None:
            connection_factory = EngineConnectionFactory(build_connection_url(self.settings))
        self.connection_factory = connection_factory
        self.connections = ConnectionManager(connection_factory)
        self.completer = SqlCompleter()
        self.last_state = QueryState.IDLE

    def get_max_result(self) -> int:
        return parse_max_result(self.get_property(MYSQL_SERVER_MAX_RESULT))

    def get_jdbc_connection(self) -> Optional[ConnectionHandle]:
        """The connection currently held, if any."""
        return self.connections.connection

    def open(self) -> None:
        logger.info("Opening MySQL connection.")
        self.connections.open()

    def close(self) -> None:
        logger.info("Closing MySQL connection.")
        self.connections.close()
        dispose = getattr(self.connection_factory, "dispose", None)
        if callable(dispose):
            dispose()

    def cancel(self, context: Optional[InterpreterContext]) -> None:
        paragraph_id = context.paragraph_id if context else None
        with paragraph_context(paragraph_id):
            self.connections.cancel()

    def completion(self, buf: str, cursor: int) -> Set[str]:
        return self.completer.complete(buf, cursor)

    def interpret(self, query: str, context: Optional[InterpreterContext]) -> InterpreterResult:
        paragraph_id = context.paragraph_id if context else None
        with paragraph_context(paragraph_id):
            logger.info(f"Run SQL command '{query}'", extra=query_fields(query, QueryState.EXECUTING))
            return self.execute_sql(query)

    def execute_sql(self, sql: str) -> InterpreterResult:
        self.last_state = QueryState.EXECUTING
        try:
            max_rows = self.get_max_result()
            explain = is_explain_query(sql)
            with self.connections.execute(sql) as execution:
                if not execution.returns_rows:
                    result_type, message = Type.TABLE, format_update_count(execution.update_count())
                else:
                    self.last_state = QueryState.ITERATING
                    result_type, message = self._render(execution, max_rows, explain)
            self.last_state = QueryState.DONE
            logger.debug("Query finished.", extra=query_fields(sql, self.last_state))
            return InterpreterResult.success(message, type=result_type)
        except QueryCancelledError as exc:
            self.last_state = QueryState.CANCELLED
            logger.warning(
                f"Query cancelled: {sql}", extra=query_fields(sql, self.last_state, exc.error_code)
            )
            return InterpreterResult.error(exc.message)
        except InterpreterError as exc:
            self.last_state = QueryState.FAILED
            logger.error(
                f"Cannot run {sql}: {exc.message}", extra=query_fields(sql, self.last_state, exc.error_code)
            )
            return InterpreterResult.error(exc.message)

    def _render(self, execution: QueryExecution, max_rows: int, explain: bool) -> Tuple[Type, str]:
        try:
            return format_result(
                execution.columns(),
                execution.rows(),
                max_rows,
                explain=explain,
                cancel_event=execution.cancel_event,
            )
        except InterpreterError:
            raise
        except Exception as exc:
            if execution.cancelled:
                raise QueryCancelledError("Query was cancelled.") from exc
            raise QueryExecutionError(
                driver_message(exc), error_code=ErrorCode.ITERATION_ERROR
            ) from exc
