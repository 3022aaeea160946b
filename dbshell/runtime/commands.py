# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Runtime that evaluates statements as database commands.

Statements are MongoDB Extended JSON documents sent with ``runCommand``
against the current database, for example::

    {"count": "orders",
     "query": {"status": "A"}}

A few extra forms are understood:

- ``name = <json>`` stores a value in a session variable
- ``name`` on its own shows the stored value
- ``use <db>``, ``show dbs|collections|vars`` and ``help`` are shell helpers

A string variable called ``prompt`` replaces the default prompt.
"""

import logging
import re
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Optional

from bson import json_util
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from rich.console import Console
from rich.table import Table

from dbshell.client.connection import ConnectionLayer, Endpoint
from dbshell.core.errors import EvaluationError
from dbshell.repl.scanner import is_complete
from dbshell.runtime.base import EvalResult, ScriptRuntime

logger = logging.getLogger(__name__)

ASSIGNMENT = re.compile(r"^([A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)\s*=(?!=)\s*(.+)$", re.DOTALL)
IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*$")

JSON_OPTIONS = json_util.RELAXED_JSON_OPTIONS

DEFAULT_DATABASE = "test"


def split_statements(source: str) -> Iterator[str]:
    """Yield the complete statements in a script, one balanced chunk at a time."""
    buffer = ""
    for line in source.splitlines():
        buffer = f"{buffer}\n{line}" if buffer else line
        if not buffer.strip():
            buffer = ""
            continue
        if is_complete(buffer):
            yield buffer.strip()
            buffer = ""
    if buffer.strip():
        yield buffer.strip()


class CommandRuntime(ScriptRuntime):
    """Evaluates Extended JSON database commands against a pymongo client.

    Usage:
        runtime = CommandRuntime(connections, console=console)
        runtime.connect("mongodb://localhost:27017/test")

        result = runtime.evaluate('{"ping": 1}')
        if result.ok:
            runtime.render(result.value)
    """

    def __init__(
        self,
        connections: Optional[ConnectionLayer] = None,
        console: Optional[Console] = None,
    ):
        self.connections = connections
        self.console = console or Console()
        self.client: Optional[MongoClient] = None
        self.database_name = DEFAULT_DATABASE
        self.variables: dict[str, Any] = {}
        self._last_result: Any = None

        self._helpers: dict[str, Callable[[str], None]] = {
            "use": self._helper_use,
            "show": self._helper_show,
            "help": self._helper_help,
        }

    # ------------------------------------------------------------------
    # Connection

    def connect(self, uri: str) -> None:
        if self.connections is None:
            raise EvaluationError("no connection layer configured")
        self.client = self.connections.connect(uri)
        database = Endpoint.from_uri(uri).database
        self.database_name = database or DEFAULT_DATABASE

    @property
    def db(self):
        """Current pymongo database."""
        if self.client is None:
            raise EvaluationError("not connected to a database (started with --nodb?)")
        return self.client[self.database_name]

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None

    # ------------------------------------------------------------------
    # Evaluation

    @property
    def last_result(self) -> Any:
        return self._last_result

    def evaluate(self, text: str) -> EvalResult:
        statement = text.strip()
        while statement.endswith(";"):
            statement = statement[:-1].rstrip()
        if not statement:
            return EvalResult.success()

        try:
            assignment = ASSIGNMENT.match(statement)
            if assignment:
                name, rhs = assignment.groups()
                value = self._parse(rhs)
                self._assign(name, value)
                self._last_result = value
            elif IDENTIFIER.match(statement):
                self._last_result = self._lookup(statement)
            else:
                self._last_result = self._run_command(self._parse(statement))
        except EvaluationError as e:
            return EvalResult.failure(str(e))
        except PyMongoError as e:
            return EvalResult.failure(str(e))

        return EvalResult.success(self._last_result)

    def run_statement(self, text: str) -> EvalResult:
        """Evaluate a statement, routing shell helpers the way the REPL does."""
        name, _, rest = text.strip().partition(" ")
        if self.lookup_helper_command(name):
            try:
                self.invoke_helper_command(name, rest)
            except (EvaluationError, PyMongoError) as e:
                return EvalResult.failure(str(e))
            return EvalResult.success()
        return self.evaluate(text)

    def _parse(self, text: str) -> Any:
        try:
            return json_util.loads(text, json_options=JSON_OPTIONS)
        except ValueError as e:
            raise EvaluationError(f"SyntaxError: {e}") from e

    def _run_command(self, command: Any) -> Any:
        if not isinstance(command, dict):
            raise EvaluationError("a command must be a document")
        if not command:
            raise EvaluationError("empty command document")
        logger.debug("runCommand on %s: %s", self.database_name, next(iter(command)))
        return self.db.command(command)

    def _lookup(self, name: str) -> Any:
        head, *path = name.split(".")
        if head not in self.variables:
            raise EvaluationError(f"ReferenceError: {head} is not defined")
        value = self.variables[head]
        for key in path:
            if not isinstance(value, dict) or key not in value:
                raise EvaluationError(f"TypeError: {name} is undefined")
            value = value[key]
        return value

    def _assign(self, name: str, value: Any) -> None:
        head, *path = name.split(".")
        if not path:
            self.variables[head] = value
            return
        target = self._lookup(".".join([head] + path[:-1]))
        if not isinstance(target, dict):
            raise EvaluationError(f"TypeError: cannot set property of {name}")
        target[path[-1]] = value

    def render(self, result: Any) -> None:
        if result is None:
            return
        self.console.print_json(json_util.dumps(result, json_options=JSON_OPTIONS))

    def current_prompt_value(self) -> Optional[str]:
        prompt = self.variables.get("prompt")
        return prompt if isinstance(prompt, str) else None

    # ------------------------------------------------------------------
    # Shell helpers

    def lookup_helper_command(self, name: str) -> bool:
        return name in self._helpers

    def invoke_helper_command(self, name: str, arg: str) -> None:
        self._helpers[name](arg.strip())

    def _helper_use(self, arg: str) -> None:
        if not arg:
            raise EvaluationError("usage: use <database>")
        self.database_name = arg.rstrip(";").strip()
        self.console.print(f"switched to db {self.database_name}")

    def _helper_show(self, arg: str) -> None:
        what = arg.rstrip(";").strip()
        if what == "dbs":
            if self.client is None:
                raise EvaluationError("not connected to a database")
            for name in self.client.list_database_names():
                self.console.print(name)
        elif what in ("collections", "tables"):
            for name in sorted(self.db.list_collection_names()):
                self.console.print(name)
        elif what == "vars":
            for name in sorted(self.variables):
                self.console.print(name)
        else:
            raise EvaluationError(f"don't know how to show [{what}]")

    def _helper_help(self, arg: str) -> None:
        table = Table(title="Shell help", show_header=True, box=None)
        table.add_column("Command", style="cyan")
        table.add_column("Description")
        rows = [
            ("use <db>", "Set the current database"),
            ("show dbs", "List databases on the server"),
            ("show collections", "List collections in the current database"),
            ("show vars", "List session variables"),
            ("{<command document>}", "Run a database command (Extended JSON)"),
            ("<name> = <json>", "Store a value in a session variable"),
            ("<name>", "Show a session variable"),
            ("edit <name>", "Edit a variable in $EDITOR"),
            ("cls", "Clear the screen"),
            ("exit", "Quit the shell"),
        ]
        for cmd, desc in rows:
            table.add_row(cmd, desc)
        self.console.print(table)

    # ------------------------------------------------------------------
    # Completion, editing and scripts

    def complete(self, prefix: str) -> list[str]:
        words = list(self._helpers) + sorted(self.variables)
        if self.client is not None:
            try:
                words += self.db.list_collection_names()
            except PyMongoError as e:
                logger.debug("Failed to list collections for completion: %s", e)
        return [w for w in words if w.startswith(prefix)]

    def export_variable(self, name: str) -> str:
        return json_util.dumps(self._lookup(name), json_options=JSON_OPTIONS, indent=2)

    def import_variable(self, name: str, text: str) -> None:
        self._assign(name, self._parse(text))

    def execute_file(self, path: str | Path, render: bool = False) -> bool:
        try:
            source = Path(path).read_text()
        except OSError as e:
            self.console.print(f"error: {e}")
            return False

        for statement in split_statements(source):
            result = self.run_statement(statement)
            if not result.ok:
                self.console.print(f"error: {result.error}")
                return False
            if render:
                self.render(result.value)
        return True
