"""
Rendering of query cursors into the tab/newline framed text understood by
the notebook front-end.

TABLE output is a header line of column names followed by one line per row.
Fields are separated by a tab and every line, the last one included, ends
with a newline. Tabs and newlines inside fields are replaced by a space so
they cannot break the framing.

TEXT output is used for plan (``EXPLAIN``) queries: the first column of each
row, one per line, without a header and without replacement.
"""
from __future__ import annotations

import re
import threading
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from mysql_interpreter.common.errors import QueryCancelledError
from mysql_interpreter.interfaces import Type

TAB = "\t"
NEWLINE = "\n"
WHITESPACE = " "
EMPTY_COLUMN_VALUE = ""
UPDATE_COUNT_HEADER = "Update Count"

_EXPLAIN_RE = re.compile(r"^\s*explain\b", re.IGNORECASE)


def is_explain_query(sql: str) -> bool:
    """True when the statement asks for an execution plan."""
    return bool(sql) and _EXPLAIN_RE.match(sql) is not None


def to_text(value: Any) -> str:
    if value is None:
        return EMPTY_COLUMN_VALUE
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def sanitize(value: Any) -> str:
    """Renders a field, replacing tabs and newlines with a single space."""
    return to_text(value).replace(TAB, WHITESPACE).replace(NEWLINE, WHITESPACE)


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise QueryCancelledError("Query was cancelled.")


def format_table(
    columns: Sequence[Any],
    rows: Iterable[Sequence[Any]],
    max_rows: int,
    cancel_event: Optional[threading.Event] = None,
) -> str:
    lines: List[str] = [TAB.join(sanitize(name) for name in columns) + NEWLINE]
    if max_rows <= 0:
        return "".join(lines)

    for row in rows:
        _check_cancelled(cancel_event)
        lines.append(TAB.join(sanitize(value) for value in row) + NEWLINE)
        if len(lines) > max_rows:
            break
    return "".join(lines)


def format_plan(
    rows: Iterable[Sequence[Any]],
    max_rows: int,
    cancel_event: Optional[threading.Event] = None,
) -> str:
    lines: List[str] = []
    if max_rows <= 0:
        return ""

    for row in rows:
        _check_cancelled(cancel_event)
        lines.append((to_text(row[0]) if len(row) else EMPTY_COLUMN_VALUE) + NEWLINE)
        if len(lines) >= max_rows:
            break
    return "".join(lines)


def format_result(
    columns: Sequence[Any],
    rows: Iterable[Sequence[Any]],
    max_rows: int,
    explain: bool = False,
    cancel_event: Optional[threading.Event] = None,
) -> Tuple[Type, str]:
    """
    Renders a cursor into text.

    Rows are pulled lazily, so at most ``max_rows`` rows are fetched from
    the cursor. The cancel event is checked before every row.
    Nothing is returned if iteration fails part way; the exception propagates
    and the partial output is discarded.

    Args:
        columns: Column names, in cursor order.
        rows: Row iterable; each row is a sequence of nullable values.
        max_rows: Upper bound on data rows, must be >= 0.
        explain: Render as plan TEXT instead of a TABLE.
        cancel_event: Set by a concurrent cancel request.

    Returns:
        The result type and the rendered message.

    Raises:
        QueryCancelledError: If the cancel event is set during iteration.
    """
    _check_cancelled(cancel_event)
    if explain:
        return Type.TEXT, format_plan(rows, max_rows, cancel_event)
    return Type.TABLE, format_table(columns, rows, max_rows, cancel_event)


def format_update_count(count: int) -> str:
    """Rendering used for statements that return no rows."""
    return f"{UPDATE_COUNT_HEADER}{NEWLINE}{count}{NEWLINE}"
