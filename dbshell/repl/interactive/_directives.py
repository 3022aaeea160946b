# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Directive mixin: lines handled by the shell itself, never evaluated."""

from dbshell.core.errors import EditError
from dbshell.repl.editor import EDIT_DIRECTIVE, edit_variable

EXIT_COMMANDS = ("exit", "exit;")


class _DirectiveMixin:
    """exit, cls and edit."""

    def _is_exit(self, line: str) -> bool:
        return line in EXIT_COMMANDS

    def _say_bye(self) -> None:
        if not self.config.quiet:
            self.console.print("bye")

    def _handle_directive(self, line: str) -> bool:
        """Handle a directive line.

        Returns:
            True if the line was consumed and the loop should restart.
        """
        if line == "cls":
            self.line_source.clear_screen()
            return True

        if line.startswith(EDIT_DIRECTIVE):
            self.history.record(line)
            self._edit(line[len(EDIT_DIRECTIVE):].strip())
            return True

        return False

    def _edit(self, name: str) -> None:
        try:
            edit_variable(name, self.runtime, self.config.editor, self.programs)
        except EditError as e:
            self.console.print(str(e), markup=False)
