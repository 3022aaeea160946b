# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Multi-line statement accumulation."""

from typing import Protocol, Optional

from dbshell.repl.scanner import is_complete
from dbshell.repl.signals import SessionContext

# Returned when the user abandons a statement with two blank lines
NOOP_STATEMENT = ";"


class LineSource(Protocol):
    def read_line(self, prompt_text: str) -> Optional[str]: ...


class ContinuationController:
    """Keeps reading lines until the buffered statement is balanced."""

    def __init__(self, source: LineSource, context: SessionContext, continuation_prompt: str = "... "):
        self.source = source
        self.context = context
        self.continuation_prompt = continuation_prompt

    def _strip_echo(self, line: str) -> str:
        prefix = self.continuation_prompt
        if prefix:
            while line.startswith(prefix):
                line = line[len(prefix):]
        return line

    def complete_statement(self, first_line: str) -> tuple[str, bool]:
        """Extend ``first_line`` into a complete statement.

        Returns:
            ``(text, cancelled)``. ``cancelled`` is True with empty text if
            the read was interrupted or input ended. Two consecutive blank
            lines give up on the statement and return ``NOOP_STATEMENT``.
        """
        code = first_line
        while not is_complete(code):
            self.context.in_multi_line = True
            code += "\n"
            if "\n\n\n" in code:
                self.context.in_multi_line = False
                return NOOP_STATEMENT, False
            if self.context.interrupted:
                return "", True

            line = self.source.read_line(self.continuation_prompt)
            if self.context.interrupted or line is None:
                return "", True

            code += self._strip_echo(line)
        # the statement is about to be evaluated, not continued
        self.context.in_multi_line = False
        return code, False
