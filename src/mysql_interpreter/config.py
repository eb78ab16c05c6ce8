from __future__ import annotations

import pathlib
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from mysql_interpreter.common.errors import InvalidConfigurationError

MYSQL_SERVER_DRIVER_NAME = "mysql.server.driver.name"
MYSQL_SERVER_URL = "mysql.server.url"
MYSQL_SERVER_USER = "mysql.server.user"
MYSQL_SERVER_PASSWORD = "mysql.server.password"
MYSQL_SERVER_MAX_RESULT = "mysql.server.max.result"

DEFAULT_JDBC_DRIVER_NAME = "mysql+pymysql"
DEFAULT_JDBC_URL = "jdbc:mysql://localhost:3306/"
DEFAULT_JDBC_USER_NAME = "root"
DEFAULT_JDBC_USER_PASSWORD = ""
DEFAULT_MAX_RESULT = "1000"

DEFAULT_PROPERTIES: Mapping[str, str] = MappingProxyType({
    MYSQL_SERVER_DRIVER_NAME: DEFAULT_JDBC_DRIVER_NAME,
    MYSQL_SERVER_URL: DEFAULT_JDBC_URL,
    MYSQL_SERVER_USER: DEFAULT_JDBC_USER_NAME,
    MYSQL_SERVER_PASSWORD: DEFAULT_JDBC_USER_PASSWORD,
    MYSQL_SERVER_MAX_RESULT: DEFAULT_MAX_RESULT,
})

PROPERTY_DESCRIPTIONS: Mapping[str, str] = MappingProxyType({
    MYSQL_SERVER_DRIVER_NAME: "SQLAlchemy dialect and driver",
    MYSQL_SERVER_URL: "Connection URL of the MySQL server",
    MYSQL_SERVER_USER: "User name",
    MYSQL_SERVER_PASSWORD: "Password",
    MYSQL_SERVER_MAX_RESULT: "Max number of rows rendered per query",
})

_JDBC_PREFIX = "jdbc:"


class InterpreterProperties(BaseModel):
    """
    Validated view of the interpreter properties.

    Attributes:
        driver_name: SQLAlchemy drivername, e.g. ``mysql+pymysql``.
        url: Server URL, optionally in JDBC form (``jdbc:mysql://host:port/db``).
        user: Authentication principal.
        password: Authentication credential.
        max_result: Upper bound on rendered data rows.
    """
    model_config = ConfigDict(frozen=True)

    driver_name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    user: str = ""
    password: str = ""
    max_result: int

    @field_validator("max_result")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be greater than or equal to 0")
        return value

    @classmethod
    def from_mapping(cls, properties: Mapping[str, Any]) -> "InterpreterProperties":
        merged = merge_with_defaults(properties)
        try:
            return cls(
                driver_name=merged[MYSQL_SERVER_DRIVER_NAME],
                url=merged[MYSQL_SERVER_URL],
                user=merged[MYSQL_SERVER_USER],
                password=merged[MYSQL_SERVER_PASSWORD],
                max_result=merged[MYSQL_SERVER_MAX_RESULT],
            )
        except ValidationError as exc:
            raise InvalidConfigurationError(f"Invalid interpreter properties: {exc}") from exc


def merge_with_defaults(properties: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Overlays user supplied properties on the defaults table.

    Values are stringified; ``None`` values fall back to the default.
    """
    merged = dict(DEFAULT_PROPERTIES)
    for key, value in (properties or {}).items():
        if value is None:
            continue
        merged[str(key)] = str(value)
    return merged


def parse_max_result(raw: Any) -> int:
    """Parses the row cap property, raising InvalidConfigurationError on bad input."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(
            f"Property '{MYSQL_SERVER_MAX_RESULT}' must be an integer, got {raw!r}"
        ) from exc
    if value < 0:
        raise InvalidConfigurationError(
            f"Property '{MYSQL_SERVER_MAX_RESULT}' must be >= 0, got {value}"
        )
    return value


def build_connection_url(props: InterpreterProperties) -> URL:
    """
    Builds the SQLAlchemy URL for the configured server.

    A leading ``jdbc:`` prefix is stripped so JDBC-style URLs keep working.
    The driver name replaces the URL scheme; user and password properties
    override any credentials embedded in the URL when they are non-empty.

    Raises:
        InvalidConfigurationError: If the URL cannot be parsed.
    """
    raw = props.url.strip()
    if raw.lower().startswith(_JDBC_PREFIX):
        raw = raw[len(_JDBC_PREFIX):]
    try:
        url = make_url(raw)
    except (ArgumentError, ValueError) as exc:
        raise InvalidConfigurationError(f"Could not parse connection URL {props.url!r}") from exc

    url = url.set(drivername=props.driver_name)
    if props.user:
        url = url.set(username=props.user)
    if props.password:
        url = url.set(password=props.password)
    return url


def load_properties(path: pathlib.Path) -> Dict[str, str]:
    """
    Load interpreter properties from a YAML file.

    Args:
        path: Path to a YAML file holding a flat mapping of property names to values.

    Returns:
        The raw property mapping (not merged with defaults).

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfigurationError: If the file is not a flat mapping.
    """
    import yaml

    if not path.exists():
        raise FileNotFoundError(f"Interpreter properties not found: {path}")

    raw = yaml.safe_load(path.read_text()) or {}
    if not isinstance(raw, dict):
        raise InvalidConfigurationError("Interpreter properties must be a YAML mapping")

    properties: Dict[str, str] = {}
    for key, value in raw.items():
        if isinstance(value, (dict, list)):
            raise InvalidConfigurationError(f"Property '{key}' must be a scalar value")
        properties[str(key)] = "" if value is None else str(value)
    return properties
