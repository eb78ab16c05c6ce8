from .interfaces import Code, Interpreter, InterpreterContext, InterpreterResult, Type
from .interpreter import MySqlInterpreter, QueryState
from .connection import ConnectionManager, EngineConnectionFactory, QueryExecution
from .config import DEFAULT_PROPERTIES, InterpreterProperties
from .common.errors import (
    ErrorCode,
    InterpreterError,
    ConnectivityError,
    QueryExecutionError,
    QueryCancelledError,
    InvalidConfigurationError,
)

__all__ = [
    "Code",
    "Interpreter",
    "InterpreterContext",
    "InterpreterResult",
    "Type",
    "MySqlInterpreter",
    "QueryState",
    "ConnectionManager",
    "EngineConnectionFactory",
    "QueryExecution",
    "DEFAULT_PROPERTIES",
    "InterpreterProperties",
    "ErrorCode",
    "InterpreterError",
    "ConnectivityError",
    "QueryExecutionError",
    "QueryCancelledError",
    "InvalidConfigurationError",
]
