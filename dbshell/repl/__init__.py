# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""REPL module - the session control engine of the shell.

This module contains:
- is_complete: balance detection for accumulated input
- ContinuationController: multi-line statement accumulation
- SessionContext, CancellationBridge: interrupt and signal handling
- KillCoordinator: cleanup of this session's remote operations
- ShellREPL: the dispatch loop
"""

from dbshell.repl.continuation import NOOP_STATEMENT, ContinuationController
from dbshell.repl.interactive import ShellREPL
from dbshell.repl.killops import KillCoordinator
from dbshell.repl.scanner import is_complete
from dbshell.repl.signals import CancellationBridge, SessionContext

__all__ = [
    "CancellationBridge",
    "ContinuationController",
    "KillCoordinator",
    "NOOP_STATEMENT",
    "SessionContext",
    "ShellREPL",
    "is_complete",
]
