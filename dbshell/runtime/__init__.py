# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Statement runtimes the shell dispatches to."""

from .base import EvalResult, ScriptRuntime
from .commands import CommandRuntime, split_statements

__all__ = [
    "CommandRuntime",
    "EvalResult",
    "ScriptRuntime",
    "split_statements",
]
