# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Core REPL mixin: __init__, prompt, dispatch, run loop, shutdown."""

import logging
from collections.abc import Callable
from typing import Optional

from rich.console import Console
from rich.markup import escape

from dbshell.core.config import ShellConfig
from dbshell.core.programs import ProgramRegistry
from dbshell.repl.continuation import NOOP_STATEMENT, ContinuationController, LineSource
from dbshell.repl.killops import KillCoordinator
from dbshell.repl.signals import SessionContext
from dbshell.runtime.base import ScriptRuntime
from dbshell.storage.history import ShellHistory

logger = logging.getLogger(__name__)


class _CoreMixin:
    """Core REPL mixin: one iteration reads, balances, dispatches, records."""

    def __init__(
        self,
        config: ShellConfig,
        runtime: ScriptRuntime,
        line_source: LineSource,
        history: ShellHistory,
        context: Optional[SessionContext] = None,
        kill_coordinator: Optional[KillCoordinator] = None,
        programs: Optional[ProgramRegistry] = None,
        console: Optional[Console] = None,
        server_state: Optional[Callable[[], str]] = None,
    ):
        self.config = config
        self.runtime = runtime
        self.line_source = line_source
        self.history = history
        self.context = context or SessionContext()
        self.kill_coordinator = kill_coordinator
        self.programs = programs or ProgramRegistry()
        self.console = console or Console()
        self.server_state = server_state
        self.continuation = ContinuationController(
            line_source, self.context, config.continuation_prompt
        )
        self._shut_down = False

    def _prompt(self) -> str:
        """Prompt chosen by the runtime, else the server state plus '> '."""
        try:
            prompt = self.runtime.current_prompt_value()
        except Exception as e:
            logger.debug("Failed to compute custom prompt: %s", e)
            prompt = None
        if prompt is not None:
            return prompt

        state = ""
        if self.server_state is not None:
            try:
                state = self.server_state()
            except Exception as e:
                logger.debug("Failed to read server state for prompt: %s", e)
        return f"{state}> "

    def _print_error(self, message) -> None:
        self.console.print(f"[red]error:[/red] {escape(str(message))}")

    def _dispatch(self, first_line: str, code: str) -> None:
        """Hand a complete statement to the runtime.

        A leading word naming a shell helper routes the rest of the
        statement to that helper as a single string.
        """
        cmd = first_line.split(" ", 1)[0]
        if '"' not in cmd:
            try:
                if self.runtime.lookup_helper_command(cmd):
                    self.runtime.invoke_helper_command(cmd, code[len(cmd):])
                    return
            except KeyboardInterrupt:
                raise
            except Exception as e:
                self._print_error(e)
                return

        try:
            result = self.runtime.evaluate(code)
            if not result.ok:
                self._print_error(result.error)
                return
            self.runtime.render(self.runtime.last_result)
        except KeyboardInterrupt:
            raise
        except Exception as e:
            self._print_error(e)

    def _on_evaluation_interrupted(self) -> None:
        self.console.print("\n[yellow]Interrupted.[/yellow]")
        self.kill_operations()

    def kill_operations(self) -> None:
        if self.kill_coordinator is None:
            return
        try:
            self.kill_coordinator.kill_tracked_operations()
        except Exception as e:
            logger.warning("Kill coordination failed: %s", e)

    def run(self) -> None:
        """Run the interactive loop until exit or end of input."""
        try:
            self._loop_body()
        finally:
            self.shutdown()

    def _loop_body(self) -> None:
        """The actual REPL loop body."""
        while True:
            self.context.begin_statement()
            line = self.line_source.read_line(self._prompt())

            if line is None:
                if self.context.interrupted:
                    self.console.print()
                    continue
                self._say_bye()
                break

            line = line.strip()
            if self._is_exit(line):
                if line == "exit":
                    self._say_bye()
                break
            if not line:
                continue
            if self._handle_directive(line):
                continue

            code, cancelled = self.continuation.complete_statement(line)
            if cancelled or self.context.interrupted:
                self.console.print()
                continue
            if code == NOOP_STATEMENT:
                continue

            try:
                self._dispatch(line, code)
            except KeyboardInterrupt:
                self._on_evaluation_interrupted()

            self.history.record(code)

    def terminate(self) -> None:
        """Cleanup for SIGTERM/SIGPIPE: kill our server ops, then save history."""
        if self._shut_down:
            return
        self._shut_down = True
        self.kill_operations()
        self.history.save()

    def shutdown(self) -> None:
        """Cleanup on normal exit: save history, then kill leftover ops."""
        if self._shut_down:
            return
        self._shut_down = True
        self.history.save()
        self.kill_operations()
