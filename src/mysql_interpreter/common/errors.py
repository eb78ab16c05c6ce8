from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Standardized error codes for interpreter failures."""
    CONNECTION_ERROR = "CONNECTION_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    ITERATION_ERROR = "ITERATION_ERROR"
    CANCELLED = "CANCELLED"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"


class InterpreterError(Exception):
    """Base class for every error raised by the interpreter core.

    Attributes:
        message (str): Human-readable message, usually the driver's own.
        error_code (ErrorCode): The standardized error code.
    """

    error_code: ErrorCode = ErrorCode.EXECUTION_ERROR

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code

    def __str__(self) -> str:
        return self.message


class ConnectivityError(InterpreterError):
    """The database connection could not be acquired."""
    error_code = ErrorCode.CONNECTION_ERROR


class QueryExecutionError(InterpreterError):
    """The driver rejected the statement or failed while reading rows."""
    error_code = ErrorCode.EXECUTION_ERROR


class QueryCancelledError(InterpreterError):
    """The in-flight query was cancelled."""
    error_code = ErrorCode.CANCELLED


class InvalidConfigurationError(InterpreterError):
    """An interpreter property has an unusable value."""
    error_code = ErrorCode.INVALID_CONFIGURATION


def driver_message(exc: BaseException) -> str:
    """Returns the most specific message available for a driver exception.

    SQLAlchemy wraps DBAPI errors and appends the statement and a
    documentation link; the wrapped ``orig`` exception carries the message
    the server actually sent.
    """
    orig = getattr(exc, "orig", None)
    if orig is not None:
        return str(orig)
    return str(exc)
