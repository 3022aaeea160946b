"""Tests for the edit directive and helper process bookkeeping."""

import sys
from unittest.mock import Mock, patch

import pytest

from dbshell.core.errors import EditError
from dbshell.core.programs import ProgramRegistry
from dbshell.repl.editor import _temp_path, edit_variable
from dbshell.runtime.commands import CommandRuntime


@pytest.fixture
def runtime():
    runtime = CommandRuntime(console=Mock())
    runtime.evaluate('doc = {"a": 1}')
    return runtime


def fake_editor(new_text, status=0):
    """A ProgramRegistry whose run() rewrites the file it is given."""
    programs = Mock(spec=ProgramRegistry)

    def run(args):
        with open(args[-1], "w") as f:
            f.write(new_text)
        return status

    programs.run.side_effect = run
    return programs


class TestEditVariable:
    """edit_variable."""

    def test_edited_value_is_applied(self, runtime, tmp_path):
        programs = fake_editor('{"a": 2, "b": 3}')

        edit_variable("doc", runtime, "vim -n", programs, temp_dir=tmp_path)

        assert runtime.variables["doc"] == {"a": 2, "b": 3}
        args = programs.run.call_args.args[0]
        assert args[:2] == ["vim", "-n"]
        assert args[2].startswith(str(tmp_path / "dbshell_edit"))
        assert args[2].endswith(".json")

    def test_editor_sees_exported_value(self, runtime, tmp_path):
        seen = []
        programs = Mock(spec=ProgramRegistry)

        def run(args):
            with open(args[-1]) as f:
                seen.append(f.read())
            return 0

        programs.run.side_effect = run

        edit_variable("doc", runtime, "vi", programs, temp_dir=tmp_path)

        assert seen == ['{\n  "a": 1\n}']

    def test_temp_file_removed(self, runtime, tmp_path):
        edit_variable("doc", runtime, "vi", fake_editor("{}"), temp_dir=tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_no_editor(self, runtime):
        with pytest.raises(EditError, match="please define the EDITOR"):
            edit_variable("doc", runtime, None, Mock())

    def test_bad_name(self, runtime):
        with pytest.raises(EditError, match="can only edit variable or property"):
            edit_variable("doc[0]", runtime, "vi", Mock())

    def test_undefined_variable(self, runtime, tmp_path):
        programs = Mock(spec=ProgramRegistry)

        with pytest.raises(EditError, match="missing is not defined"):
            edit_variable("missing", runtime, "vi", programs, temp_dir=tmp_path)
        programs.run.assert_not_called()

    def test_editor_failure_keeps_value(self, runtime, tmp_path):
        programs = fake_editor('{"a": 9}', status=1)

        with pytest.raises(EditError, match=r"editor exited with error \(1\)"):
            edit_variable("doc", runtime, "vi", programs, temp_dir=tmp_path)

        assert runtime.variables["doc"] == {"a": 1}
        assert list(tmp_path.iterdir()) == []

    def test_editor_not_found(self, runtime, tmp_path):
        programs = Mock(spec=ProgramRegistry)
        programs.run.side_effect = FileNotFoundError("no such file: nosuchedit")

        with pytest.raises(EditError, match="failed to launch"):
            edit_variable("doc", runtime, "nosuchedit", programs, temp_dir=tmp_path)

    def test_invalid_edit_keeps_value(self, runtime, tmp_path):
        with pytest.raises(EditError):
            edit_variable("doc", runtime, "vi", fake_editor("{not json"), temp_dir=tmp_path)

        assert runtime.variables["doc"] == {"a": 1}

    def test_property_edit(self, runtime, tmp_path):
        runtime.evaluate('outer = {"inner": {"x": 1}}')

        edit_variable("outer.inner", runtime, "vi", fake_editor('{"x": 5}'), temp_dir=tmp_path)

        assert runtime.variables["outer"] == {"inner": {"x": 5}}


class TestTempPath:
    def test_skips_existing_names(self, tmp_path):
        with patch("dbshell.repl.editor.time.time", return_value=1000):
            (tmp_path / "dbshell_edit1000.json").write_text("")
            assert _temp_path(tmp_path) == tmp_path / "dbshell_edit1001.json"

    def test_gives_up(self, tmp_path):
        with patch("dbshell.repl.editor.time.time", return_value=1000):
            for i in range(10):
                (tmp_path / f"dbshell_edit{1000 + i}.json").write_text("")
            with pytest.raises(EditError, match="couldn't create unique temp file"):
                _temp_path(tmp_path)


class TestProgramRegistry:
    """ProgramRegistry with real short-lived processes."""

    def test_run_returns_status_and_forgets(self):
        programs = ProgramRegistry()

        status = programs.run([sys.executable, "-c", "raise SystemExit(3)"])

        assert status == 3
        assert programs.running == []

    def test_terminate_all(self):
        programs = ProgramRegistry()
        proc = programs.spawn([sys.executable, "-c", "import time; time.sleep(30)"])
        try:
            assert programs.running == [proc]
            programs.terminate_all()
            proc.wait(timeout=10)
            assert programs.running == []
        finally:
            if proc.poll() is None:
                proc.kill()
