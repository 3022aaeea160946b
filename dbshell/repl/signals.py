# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Interrupt and signal handling for the interactive shell.

Signals arrive asynchronously, but Python runs their handlers on the main
thread between bytecodes, so the handlers here only flip the booleans on a
``SessionContext`` or, while a read is blocked at the prompt, raise
``KeyboardInterrupt`` to unwind that read. The read path and the
continuation controller poll the flags afterwards.

Signal classes:
- SIGINT: recoverable, abandons the current read or multi-line statement.
- SIGTERM, SIGPIPE: kill tracked remote ops, save history, exit cleanly.
- SIGABRT, SIGSEGV, SIGFPE, SIGBUS: print a stack trace and exit at once
  without touching history or the server.
"""

import logging
import os
import signal
import sys
import traceback
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from dbshell.core.errors import ExitCode
from dbshell.core.programs import ProgramRegistry

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Interrupt state shared by the read path and the signal handlers.

    ``at_prompt`` is only true while a blocking read is in progress and is
    only written by the thread doing that read.
    """
    interrupted: bool = False
    at_prompt: bool = False
    in_multi_line: bool = False

    def begin_statement(self) -> None:
        """Reset per-statement state before a fresh top-level read."""
        self.interrupted = False
        self.in_multi_line = False

    def mark_interrupted(self) -> None:
        self.interrupted = True

    @contextmanager
    def reading(self) -> Iterator["SessionContext"]:
        """Hold ``at_prompt`` for exactly the duration of a blocking read."""
        self.at_prompt = True
        try:
            yield self
        finally:
            self.at_prompt = False


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return "unknown"


def _write_raw(text: str) -> None:
    """Write straight to the stderr fd, bypassing any buffered wrappers."""
    try:
        os.write(sys.stderr.fileno(), text.encode("utf-8", "replace"))
    except (OSError, ValueError):
        pass


class CancellationBridge:
    """Maps host signals onto session flags and shutdown paths.

    Usage:
        bridge = CancellationBridge(context, on_terminate=shutdown)
        bridge.install()
        try:
            repl.run()
        finally:
            bridge.uninstall()
    """

    RECOVERABLE_TERMINATE = ("SIGTERM", "SIGPIPE")
    FATAL = ("SIGABRT", "SIGSEGV", "SIGFPE", "SIGBUS")

    def __init__(
        self,
        context: SessionContext,
        on_terminate: Optional[Callable[[], None]] = None,
        programs: Optional[ProgramRegistry] = None,
        exit_func: Callable[[int], None] = sys.exit,
        fatal_exit_func: Callable[[int], None] = os._exit,
    ):
        self.context = context
        self.on_terminate = on_terminate
        self.programs = programs
        self._exit = exit_func
        self._fatal_exit = fatal_exit_func
        self._previous: dict[int, object] = {}
        self._previous_excepthook = None

    @staticmethod
    def _available(names) -> list[int]:
        return [getattr(signal, name) for name in names if hasattr(signal, name)]

    def install(self) -> None:
        """Install handlers. Must be called from the main thread."""
        handlers: list[tuple[int, Callable]] = [(signal.SIGINT, self.handle_interrupt)]
        handlers += [(s, self.handle_terminate) for s in self._available(self.RECOVERABLE_TERMINATE)]
        handlers += [(s, self.handle_fatal) for s in self._available(self.FATAL)]

        for signum, handler in handlers:
            try:
                self._previous[signum] = signal.signal(signum, handler)
            except (OSError, ValueError) as e:
                logger.debug("Cannot handle %s: %s", _signal_name(signum), e)

        self._previous_excepthook = sys.excepthook
        sys.excepthook = self.handle_uncaught

    def uninstall(self) -> None:
        for signum, previous in self._previous.items():
            try:
                signal.signal(signum, previous)
            except (OSError, ValueError, TypeError) as e:
                logger.debug("Cannot restore %s: %s", _signal_name(signum), e)
        self._previous.clear()
        if self._previous_excepthook is not None:
            sys.excepthook = self._previous_excepthook
            self._previous_excepthook = None

    def handle_interrupt(self, signum, frame) -> None:
        """SIGINT: abandon the blocked read or the statement being accumulated.

        While evaluating, the interrupt is passed to the runtime as a plain
        KeyboardInterrupt and no session flag changes.
        """
        ctx = self.context
        if ctx.at_prompt:
            ctx.mark_interrupted()
            raise KeyboardInterrupt
        if ctx.in_multi_line:
            ctx.mark_interrupted()
            return
        signal.default_int_handler(signum, frame)

    def handle_terminate(self, signum, frame) -> None:
        """SIGTERM/SIGPIPE: best-effort cleanup, then a clean exit."""
        if _signal_name(signum) == "SIGPIPE":
            _write_raw("dbshell got signal SIGPIPE\n")
        logger.debug("Terminating on %s", _signal_name(signum))

        if self.on_terminate is not None:
            try:
                self.on_terminate()
            except Exception as e:
                logger.warning("Cleanup failed during %s: %s", _signal_name(signum), e)
        self._exit(ExitCode.CLEAN)

    def handle_fatal(self, signum, frame) -> None:
        """Fault signals: dump a stack trace, stop helpers, exit immediately."""
        stack = "".join(traceback.format_stack(frame)) if frame is not None else ""
        _write_raw(
            f"dbshell got signal {int(signum)} ({_signal_name(signum)}), stack trace:\n{stack}"
        )
        self._die()

    def handle_uncaught(self, exc_type, exc, tb) -> None:
        """Replacement for sys.excepthook: same fatal path as a fault signal."""
        if issubclass(exc_type, (KeyboardInterrupt, SystemExit)):
            if self._previous_excepthook is not None:
                self._previous_excepthook(exc_type, exc, tb)
            return
        text = "".join(traceback.format_exception(exc_type, exc, tb))
        _write_raw(f"uncaught exception in shell, printing stack:\n{text}")
        self._die()

    def _die(self) -> None:
        if self.programs is not None:
            self.programs.terminate_all()
        self._fatal_exit(ExitCode.FATAL_SIGNAL)
