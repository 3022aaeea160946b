# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Line sources for the dispatch loop.

``read_line`` returns the text of one line, or None. None means either
end-of-input or an interrupted read; ``context.interrupted`` tells which.
Both sources hold ``context.at_prompt`` only while actually blocked.
"""

import logging
import sys
from collections.abc import Iterable
from typing import Optional, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.shortcuts import clear

from dbshell.repl.signals import SessionContext
from dbshell.runtime.base import ScriptRuntime
from dbshell.storage.history import ShellHistory

logger = logging.getLogger(__name__)


class RuntimeCompleter(Completer):
    """Tab completion backed by the runtime's ``complete`` hook."""

    def __init__(self, runtime: ScriptRuntime):
        self.runtime = runtime

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        prefix = document.get_word_before_cursor(WORD=True)
        if '"' in prefix:
            return
        try:
            candidates = self.runtime.complete(prefix)
        except Exception as e:
            logger.debug("Completion failed for %r: %s", prefix, e)
            return
        for candidate in candidates:
            yield Completion(candidate, start_position=-len(prefix))


class PromptLineSource:
    """Interactive terminal input through prompt_toolkit."""

    def __init__(
        self,
        context: SessionContext,
        history: ShellHistory,
        completer: Optional[Completer] = None,
        session: Optional[PromptSession] = None,
    ):
        self.context = context
        self.history = history
        self.session = session or PromptSession(
            history=history,
            completer=completer,
            complete_while_typing=False,
        )

    def read_line(self, prompt_text: str) -> Optional[str]:
        with self.context.reading():
            try:
                return self.session.prompt(prompt_text)
            except KeyboardInterrupt:
                self.context.mark_interrupted()
                return None
            except EOFError:
                return None

    def clear_screen(self) -> None:
        clear()


class StreamLineSource:
    """Plain line-by-line input, used when stdin is not a terminal."""

    def __init__(
        self,
        context: SessionContext,
        history: Optional[ShellHistory] = None,
        stream: Optional[TextIO] = None,
        output: Optional[TextIO] = None,
        echo_prompt: bool = False,
    ):
        self.context = context
        self.history = history
        self.stream = stream or sys.stdin
        self.output = output or sys.stdout
        self.echo_prompt = echo_prompt

    def read_line(self, prompt_text: str) -> Optional[str]:
        if self.echo_prompt:
            self.output.write(prompt_text)
            self.output.flush()
        with self.context.reading():
            try:
                line = self.stream.readline()
            except KeyboardInterrupt:
                self.context.mark_interrupted()
                return None
        if not line:
            return None
        return line.rstrip("\r\n")

    def clear_screen(self) -> None:
        pass
