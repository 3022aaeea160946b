# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Shell error types and process exit codes."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit statuses reported to the operator."""
    CLEAN = 0
    BAD_INVOCATION = 2
    FATAL_SIGNAL = 14
    STARTUP_SCRIPT_FAILURE = 251  # -5 as an unsigned status
    EVAL_FAILURE = 252  # -4
    FILE_LOAD_FAILURE = 253  # -3
    CONNECT_FAILURE = 255  # -1


class ShellError(Exception):
    """Base class for errors raised by the shell."""


class BadInvocationError(ShellError):
    """Command-line arguments could not be turned into a session."""


class EvaluationError(ShellError):
    """A statement failed inside the runtime."""


class EditError(ShellError):
    """The edit directive could not round-trip a variable through the editor."""
