from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Set

from pydantic import BaseModel, ConfigDict, Field


class Code(str, Enum):
    """Outcome of an interpret call."""
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class Type(str, Enum):
    """How the message of a result should be displayed."""
    TABLE = "TABLE"
    TEXT = "TEXT"


class InterpreterResult(BaseModel):
    """Envelope returned by every interpret call."""

    code: Code
    type: Type = Type.TEXT
    message: str = ""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def success(cls, message: str, type: Type = Type.TABLE) -> "InterpreterResult":
        return cls(code=Code.SUCCESS, type=type, message=message)

    @classmethod
    def error(cls, message: str) -> "InterpreterResult":
        return cls(code=Code.ERROR, type=Type.TEXT, message=message)


class InterpreterContext(BaseModel):
    """Per-call context handed to interpret and cancel."""

    paragraph_id: Optional[str] = Field(
        default=None, description="Identifier of the calling paragraph, attached to log records."
    )

    model_config = ConfigDict(extra="ignore")


class Interpreter(ABC):
    """Generic interpreter contract: run a query, format the result."""

    def __init__(self, properties: Optional[Mapping[str, Any]] = None):
        self._properties: Dict[str, str] = {
            str(k): str(v) for k, v in (properties or {}).items() if v is not None
        }

    def get_property(self, key: str) -> Optional[str]:
        return self._properties.get(key)

    def set_property(self, key: str, value: Any) -> None:
        """Sets a property for subsequent calls; None removes it."""
        if value is None:
            self._properties.pop(str(key), None)
        else:
            self._properties[str(key)] = str(value)

    @abstractmethod
    def open(self) -> None:
        """Acquire the resources needed to run queries."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release every resource held by the interpreter."""
        pass

    @abstractmethod
    def interpret(self, query: str, context: Optional[InterpreterContext]) -> InterpreterResult:
        """Run a query and return the formatted result."""
        pass

    @abstractmethod
    def cancel(self, context: Optional[InterpreterContext]) -> None:
        """Interrupt the in-flight query, if any."""
        pass

    @abstractmethod
    def completion(self, buf: str, cursor: int) -> Set[str]:
        """Return completion candidates for the word under the cursor."""
        pass
