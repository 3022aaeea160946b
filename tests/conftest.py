# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Pytest configuration and shared fixtures."""

from unittest.mock import Mock

import pytest
from rich.console import Console

from dbshell.repl.signals import SessionContext
from dbshell.runtime.base import EvalResult, ScriptRuntime

# Scripted stand-in for Ctrl-C at the prompt
INTERRUPT = object()


class ScriptedLineSource:
    """Line source that replays a fixed list of lines.

    ``None`` stands for end-of-input and ``INTERRUPT`` for Ctrl-C during the
    read. Running past the end of the script is end-of-input.
    """

    def __init__(self, context: SessionContext, lines):
        self.context = context
        self.lines = list(lines)
        self.prompts: list[str] = []
        self.at_prompt_seen: list[bool] = []
        self.cleared = 0

    def read_line(self, prompt_text):
        self.prompts.append(prompt_text)
        with self.context.reading():
            self.at_prompt_seen.append(self.context.at_prompt)
            if not self.lines:
                return None
            line = self.lines.pop(0)
            if line is INTERRUPT:
                self.context.mark_interrupted()
                return None
            return line

    def clear_screen(self):
        self.cleared += 1


class FakeRuntime(ScriptRuntime):
    """Runtime that records what it is asked to do."""

    def __init__(self, helpers=("use", "show"), fail_on=()):
        self.helpers = set(helpers)
        self.fail_on = set(fail_on)
        self.evaluated: list[str] = []
        self.helper_calls: list[tuple[str, str]] = []
        self.rendered: list = []
        self.prompt = None
        self._last = None

    def evaluate(self, text):
        self.evaluated.append(text)
        if text in self.fail_on:
            return EvalResult.failure(f"bad statement: {text}")
        self._last = f"result of {text}"
        return EvalResult.success(self._last)

    def render(self, result):
        self.rendered.append(result)

    @property
    def last_result(self):
        return self._last

    def current_prompt_value(self):
        return self.prompt

    def lookup_helper_command(self, name):
        return name in self.helpers

    def invoke_helper_command(self, name, arg):
        self.helper_calls.append((name, arg))

    def execute_file(self, path):
        return True


@pytest.fixture
def context():
    """Fresh interrupt state."""
    return SessionContext()


@pytest.fixture
def fake_runtime():
    return FakeRuntime()


@pytest.fixture
def mock_console():
    """Create a mock Rich Console that captures output."""
    console = Mock(spec=Console)
    console.print = Mock()
    return console


def printed(console) -> str:
    """All text passed to a mock console, joined by newlines."""
    return "\n".join(
        " ".join(str(a) for a in call.args) for call in console.print.call_args_list
    )
