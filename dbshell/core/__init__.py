# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Core configuration, errors and process bookkeeping."""

from .config import ShellConfig
from .errors import (
    BadInvocationError,
    EditError,
    EvaluationError,
    ExitCode,
    ShellError,
)
from .programs import ProgramRegistry

__all__ = [
    "BadInvocationError",
    "EditError",
    "EvaluationError",
    "ExitCode",
    "ProgramRegistry",
    "ShellConfig",
    "ShellError",
]
