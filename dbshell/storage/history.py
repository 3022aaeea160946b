# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Statement history persisted between shell sessions.

History is loaded when the shell starts and written back when it exits (or
on SIGTERM/SIGPIPE). Only statements the dispatch loop records end up here;
the raw lines prompt_toolkit would normally append on every accept are
ignored, so continuation lines never show up as separate entries.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from prompt_toolkit.history import FileHistory

logger = logging.getLogger(__name__)


class ShellHistory(FileHistory):
    """FileHistory that filters, deduplicates and saves in one batch at exit."""

    def __init__(self, filename: str | Path, sensitive_pattern: Optional[re.Pattern | str] = None):
        super().__init__(str(filename))
        if isinstance(sensitive_pattern, str):
            sensitive_pattern = re.compile(sensitive_pattern)
        self.sensitive_pattern = sensitive_pattern
        self._last_line: Optional[str] = None
        self._pending: list[str] = []

        try:
            self._loaded_strings = list(self.load_history_strings())
        except OSError as e:
            logger.debug("Could not load history from %s: %s", filename, e)
            self._loaded_strings = []
        self._loaded = True

    def append_string(self, string: str) -> None:
        # prompt_toolkit calls this for every accepted line; statements are
        # recorded explicitly through record() instead.
        pass

    def store_string(self, string: str) -> None:
        self._pending.append(string)

    def is_sensitive(self, line: str) -> bool:
        return bool(self.sensitive_pattern and self.sensitive_pattern.search(line))

    def record(self, line: str) -> bool:
        """Add an accepted statement.

        Returns:
            True if the line was added, False if it was blank, a repeat of
            the previous submission, or sensitive
        """
        if not line:
            return False
        if line == self._last_line:
            return False
        self._last_line = line
        if self.is_sensitive(line):
            return False
        super().append_string(line)
        return True

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    def save(self) -> None:
        """Write statements recorded since the last save to the history file."""
        pending, self._pending = self._pending, []
        for line in pending:
            try:
                FileHistory.store_string(self, line)
            except OSError as e:
                logger.warning("Could not save history to %s: %s", self.filename, e)
                return
