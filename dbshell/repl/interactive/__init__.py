# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Interactive shell loop."""

from dbshell.repl.interactive._core import _CoreMixin
from dbshell.repl.interactive._directives import EXIT_COMMANDS, _DirectiveMixin


class ShellREPL(
    _CoreMixin,
    _DirectiveMixin,
):
    """Interactive Read-Eval-Print Loop for a data-store session."""


__all__ = ["EXIT_COMMANDS", "ShellREPL"]
