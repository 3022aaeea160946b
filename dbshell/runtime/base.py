# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Base class for the runtimes the shell dispatches statements to."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


@dataclass
class EvalResult:
    """Outcome of evaluating one statement."""
    ok: bool
    error: Optional[str] = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> "EvalResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "EvalResult":
        return cls(ok=False, error=error)


class ScriptRuntime(ABC):
    """Executes statements and formats their results.

    The shell owns reading, balancing and history; a runtime owns everything
    that depends on the statement language.
    """

    @abstractmethod
    def evaluate(self, text: str) -> EvalResult:
        """Evaluate a complete statement.

        Failures are reported through the result, not raised.
        """

    @abstractmethod
    def render(self, result: Any) -> None:
        """Print the value of the last successful statement."""

    @property
    @abstractmethod
    def last_result(self) -> Any:
        """Value produced by the most recent statement."""

    def current_prompt_value(self) -> Optional[str]:
        """Prompt text chosen by the user, or None for the default prompt."""
        return None

    @abstractmethod
    def lookup_helper_command(self, name: str) -> bool:
        """Return True if ``name`` is a shell-helper command."""

    @abstractmethod
    def invoke_helper_command(self, name: str, arg: str) -> None:
        """Run a shell helper with the rest of the statement as one string."""

    def complete(self, prefix: str) -> list[str]:
        """Completion candidates for ``prefix``."""
        return []

    def export_variable(self, name: str) -> str:
        """Serialize a variable for editing."""
        raise NotImplementedError(f"{type(self).__name__} cannot export variables")

    def import_variable(self, name: str, text: str) -> None:
        """Assign edited text back to a variable."""
        raise NotImplementedError(f"{type(self).__name__} cannot import variables")

    @abstractmethod
    def execute_file(self, path: str | Path) -> bool:
        """Run every statement in a file. Returns False on the first failure."""

    def close(self) -> None:
        """Release connections."""
