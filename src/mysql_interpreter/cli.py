"""Command line entry point for running SQL through the interpreter."""
import pathlib
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typing_extensions import Annotated

from mysql_interpreter.common.errors import InterpreterError
from mysql_interpreter.common.logger import configure_logging
from mysql_interpreter.common.settings import settings
from mysql_interpreter.config import (
    DEFAULT_PROPERTIES,
    MYSQL_SERVER_MAX_RESULT,
    MYSQL_SERVER_URL,
    PROPERTY_DESCRIPTIONS,
    load_properties,
)
from mysql_interpreter.formatter import NEWLINE, TAB
from mysql_interpreter.interfaces import Code, InterpreterResult, Type
from mysql_interpreter.interpreter import MySqlInterpreter

app = typer.Typer(
    name="mysql-interpreter",
    help="Run SQL against a MySQL server and print tab separated results.",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()

PropertiesOption = Annotated[
    Optional[pathlib.Path], typer.Option("--properties", "-p", help="Path to interpreter properties YAML")
]


@app.callback()
def global_callback(
    env: Annotated[Optional[str], typer.Option("--env", "-e", help="Environment name; loads .env.<env>.")] = None,
):
    """
    MySQL interpreter CLI.
    """
    if env:
        settings.configure_env(env)
    configure_logging(level=settings.log_level, json_format=settings.log_json)


def _resolve_properties(path: Optional[pathlib.Path]) -> Dict[str, str]:
    if path is None and settings.properties_path:
        path = pathlib.Path(settings.properties_path)
    if path is None:
        return {}
    return load_properties(path)


def render(result: InterpreterResult) -> None:
    if result.code == Code.ERROR:
        console.print(f"[bold red]✘ {escape(result.message)}[/bold red]")
        return
    if result.type == Type.TEXT:
        console.print(result.message, end="", markup=False, highlight=False)
        return

    lines = result.message.split(NEWLINE)
    if lines and lines[-1] == "":
        lines.pop()
    if not lines:
        return
    table = Table(show_lines=False)
    for name in lines[0].split(TAB):
        table.add_column(escape(name), style="cyan")
    for line in lines[1:]:
        table.add_row(*(escape(cell) for cell in line.split(TAB)))
    console.print(table)


@app.command()
def query(
    sql: Annotated[str, typer.Argument(help="SQL statement to run")],
    properties: PropertiesOption = None,
    url: Annotated[Optional[str], typer.Option("--url", help="Override the connection URL")] = None,
    max_result: Annotated[Optional[int], typer.Option("--max-result", min=0, help="Max rows to display")] = None,
):
    """
    Run a single statement and print its result.
    """
    try:
        props = _resolve_properties(properties)
        if url is not None:
            props[MYSQL_SERVER_URL] = url
        if max_result is not None:
            props[MYSQL_SERVER_MAX_RESULT] = str(max_result)
        interpreter = MySqlInterpreter(props)
    except (InterpreterError, FileNotFoundError) as exc:
        console.print(f"[bold red]✘ {escape(str(exc))}[/bold red]")
        raise typer.Exit(code=1)

    try:
        result = interpreter.interpret(sql, None)
    finally:
        interpreter.close()

    render(result)
    if result.code == Code.ERROR:
        raise typer.Exit(code=1)


@app.command()
def complete(
    buf: Annotated[str, typer.Argument(help="Text to complete")],
    cursor: Annotated[int, typer.Option("--cursor", "-c", help="Cursor offset in the text")] = 0,
):
    """
    Print keyword completions for the word under the cursor.
    """
    interpreter = MySqlInterpreter()
    for candidate in sorted(interpreter.completion(buf, cursor)):
        console.print(candidate, markup=False)


@app.command()
def defaults():
    """
    Show the default interpreter properties.
    """
    table = Table(title="Default Interpreter Properties")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Default", style="magenta")
    table.add_column("Description", style="green")
    for key, value in DEFAULT_PROPERTIES.items():
        table.add_row(key, value, PROPERTY_DESCRIPTIONS.get(key, ""))
    console.print(table)


if __name__ == "__main__":
    app()
