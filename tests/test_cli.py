# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Tests for CLI interface.

These tests use Click's CliRunner to test command behavior without a
running server. The connection layer and signal handlers are patched out.
"""

import signal
from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner
from pymongo.errors import ServerSelectionTimeoutError

from dbshell import __version__
from dbshell.cli import is_script_path, main, resolve_connection_uri
from dbshell.core.errors import BadInvocationError, ExitCode
from dbshell.repl.signals import CancellationBridge, SessionContext


@pytest.fixture
def runner():
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def home(tmp_path):
    return tmp_path


@pytest.fixture(autouse=True)
def no_signal_handlers():
    with patch("dbshell.cli.CancellationBridge") as bridge:
        yield bridge


@pytest.fixture
def connections():
    """Patched ConnectionLayer whose clients answer every command with ok."""
    with patch("dbshell.cli.ConnectionLayer") as layer_cls:
        client = layer_cls.return_value.connect.return_value
        client["test"].command.return_value = {"ok": 1.0}
        yield layer_cls.return_value


def invoke(runner, home, args, input=None):
    return runner.invoke(main, args, input=input, env={"HOME": str(home), "EDITOR": ""})


class TestResolveConnectionUri:
    """Address forms accepted on the command line."""

    @pytest.mark.parametrize("address,expected", [
        ("foo", "mongodb://127.0.0.1:27017/foo"),
        ("192.168.0.5", "mongodb://192.168.0.5/test"),
        ("192.168.0.5/foo", "mongodb://192.168.0.5/foo"),
        ("192.168.0.5:9999/foo", "mongodb://192.168.0.5:9999/foo"),
        ("localhost:27018", "mongodb://localhost:27018/test"),
        ("mongodb://a:1,b:2/x?replicaSet=rs0", "mongodb://a:1,b:2/x?replicaSet=rs0"),
    ])
    def test_address_only(self, address, expected):
        assert resolve_connection_uri(address) == expected

    def test_host_and_port(self):
        assert resolve_connection_uri("foo", host="db1", port="1234") == "mongodb://db1:1234/foo"

    def test_host_only(self):
        assert resolve_connection_uri("foo", host="db1") == "mongodb://db1:27017/foo"

    def test_port_only(self):
        assert resolve_connection_uri("foo", port="1234") == "mongodb://127.0.0.1:1234/foo"

    def test_ipv6_host(self):
        assert resolve_connection_uri("foo", host="::1") == "mongodb://[::1]:27017/foo"

    def test_path_with_host_rejected(self):
        with pytest.raises(BadInvocationError, match="can't have host or port"):
            resolve_connection_uri("192.168.0.5/foo", host="db1")

    def test_uri_with_port_rejected(self):
        with pytest.raises(BadInvocationError):
            resolve_connection_uri("mongodb://a/x", port="1")


class TestIsScriptPath:
    """Positional argument classification."""

    def test_plain_name_is_address(self):
        assert not is_script_path("foo")

    def test_script_suffix(self):
        assert is_script_path("setup.js")
        assert is_script_path("dir.v2/setup.json")

    def test_dotted_address(self):
        assert not is_script_path("192.168.0.5")
        assert not is_script_path("192.168.0.5/foo")

    def test_existing_file(self, tmp_path):
        path = tmp_path / "commands.txt"
        path.write_text("")
        assert is_script_path(str(path))


class TestBasics:
    """Help, version and argument errors."""

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "--nodb" in result.output
        assert "--eval" in result.output
        assert "--nokillop" not in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_star_address(self, runner, home, connections):
        result = invoke(runner, home, ["*"])

        assert result.exit_code == ExitCode.BAD_INVOCATION
        assert "invalid db address" in result.output

    def test_host_with_address_path(self, runner, home, connections):
        result = invoke(runner, home, ["--host", "db1", "1.2.3.4/foo", "--eval", "x = 1"])

        assert result.exit_code == ExitCode.BAD_INVOCATION

    def test_bad_config_file(self, runner, home, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("history_file: ${DEFINITELY_NOT_SET_FOR_DBSHELL}\n")

        result = invoke(runner, home, ["-c", str(config), "--nodb"])

        assert result.exit_code == ExitCode.BAD_INVOCATION
        assert "Config error" in result.output


class TestNonInteractive:
    """--eval and script files."""

    def test_eval_success(self, runner, home, connections):
        result = invoke(runner, home, ["--eval", '{"ping": 1}'])

        assert result.exit_code == ExitCode.CLEAN
        assert "connecting to: mongodb://127.0.0.1:27017/test" in result.output
        assert '"ok": 1.0' in result.output
        connections.connect.assert_called_once_with("mongodb://127.0.0.1:27017/test")

    def test_eval_failure(self, runner, home):
        result = invoke(runner, home, ["--nodb", "--eval", "missing"])

        assert result.exit_code == ExitCode.EVAL_FAILURE
        assert "missing is not defined" in result.output

    def test_quiet_hides_banner(self, runner, home):
        result = invoke(runner, home, ["--nodb", "--quiet", "--eval", "x = 1"])

        assert result.exit_code == ExitCode.CLEAN
        assert "dbshell version" not in result.output

    def test_connect_failure(self, runner, home, connections):
        connections.connect.side_effect = ServerSelectionTimeoutError("connection refused")

        result = invoke(runner, home, ["--eval", "x = 1"])

        assert result.exit_code == ExitCode.CONNECT_FAILURE
        assert "connection refused" in result.output

    def test_script_file(self, runner, home, tmp_path):
        script = tmp_path / "setup.json"
        script.write_text("a = 1\n")

        result = invoke(runner, home, ["--nodb", str(script)])

        assert result.exit_code == ExitCode.CLEAN

    def test_script_file_after_address(self, runner, home, tmp_path, connections):
        script = tmp_path / "setup.json"
        script.write_text("a = 1\n")

        result = invoke(runner, home, ["shop", str(script)])

        assert result.exit_code == ExitCode.CLEAN
        connections.connect.assert_called_once_with("mongodb://127.0.0.1:27017/shop")

    def test_failing_script_file(self, runner, home, tmp_path):
        script = tmp_path / "bad.json"
        script.write_text("missing\n")

        result = invoke(runner, home, ["--nodb", str(script)])

        assert result.exit_code == ExitCode.FILE_LOAD_FAILURE
        assert "failed to load" in result.output

    def test_sigterm_during_script_runs_kill_pass(self, runner, home, tmp_path, no_signal_handlers):
        """SIGTERM while a script file runs kills our ops before exiting."""
        script = tmp_path / "job.json"
        script.write_text("a = 1\n")
        calls = []

        def execute_file(path, render=False):
            on_terminate = no_signal_handlers.call_args.kwargs["on_terminate"]
            bridge = CancellationBridge(SessionContext(), on_terminate=on_terminate, exit_func=Mock())
            bridge.handle_terminate(signal.SIGTERM, None)
            return True

        with patch("dbshell.cli.KillCoordinator") as coordinator_cls, \
                patch("dbshell.cli.CommandRuntime.execute_file", side_effect=execute_file):
            coordinator_cls.return_value.kill_tracked_operations.side_effect = lambda: calls.append("kill")
            result = invoke(runner, home, ["--nodb", str(script)])

        assert result.exit_code == ExitCode.CLEAN
        assert calls == ["kill"]

    def test_sigterm_in_shell_terminates_repl(self, runner, home, no_signal_handlers):
        terminated = []

        def run(self):
            terminated.append(no_signal_handlers.call_args.kwargs["on_terminate"])

        with patch("dbshell.cli.ShellREPL.run", run), \
                patch("dbshell.cli.ShellREPL.terminate", lambda self: terminated.append("terminate")), \
                patch("dbshell.cli.KillCoordinator") as coordinator_cls:
            invoke(runner, home, ["--nodb"], input="")
            terminated[0]()

        assert terminated[1:] == ["terminate"]
        coordinator_cls.return_value.kill_tracked_operations.assert_not_called()

    def test_missing_script_file(self, runner, home, tmp_path):
        result = invoke(runner, home, ["--nodb", str(tmp_path / "nope.js")])

        assert result.exit_code == ExitCode.FILE_LOAD_FAILURE


class TestInteractive:
    """The shell reading statements from a non-terminal stdin."""

    def test_statements_then_exit(self, runner, home):
        result = invoke(runner, home, ["--nodb"], input="x = 5\nx\nexit\n")

        assert result.exit_code == ExitCode.CLEAN
        assert "bye" in result.output
        assert "x = 5" in (home / ".dbshell").read_text()

    def test_end_of_input_exits_cleanly(self, runner, home):
        result = invoke(runner, home, ["--nodb"], input="x = 5\n")

        assert result.exit_code == ExitCode.CLEAN

    def test_errors_do_not_end_session(self, runner, home):
        result = invoke(runner, home, ["--nodb"], input="missing\ny = 2\nexit\n")

        assert result.exit_code == ExitCode.CLEAN
        assert "missing is not defined" in result.output
        assert "y = 2" in (home / ".dbshell").read_text()

    def test_rc_file_runs_first(self, runner, home):
        (home / ".dbshellrc.json").write_text("greeting = 1\n")

        result = invoke(runner, home, ["--nodb"], input="greeting\nexit\n")

        assert result.exit_code == ExitCode.CLEAN
        assert "not defined" not in result.output

    def test_norc(self, runner, home):
        (home / ".dbshellrc.json").write_text("greeting = 1\n")

        result = invoke(runner, home, ["--nodb", "--norc"], input="greeting\nexit\n")

        assert "greeting is not defined" in result.output

    def test_failing_rc_file(self, runner, home):
        (home / ".dbshellrc.json").write_text("missing\n")

        result = invoke(runner, home, ["--nodb"], input="exit\n")

        assert result.exit_code == ExitCode.STARTUP_SCRIPT_FAILURE
        assert "could not be executed" in result.output

    def test_shell_after_eval(self, runner, home):
        result = invoke(runner, home, ["--nodb", "--shell", "--eval", "x = 7"], input="x\nexit\n")

        assert result.exit_code == ExitCode.CLEAN
        assert 'type "help" for help' in result.output
        assert "bye" in result.output

    def test_signal_bridge_installed_and_removed(self, runner, home, no_signal_handlers):
        invoke(runner, home, ["--nodb"], input="exit\n")

        bridge = no_signal_handlers.return_value
        bridge.install.assert_called_once()
        bridge.uninstall.assert_called_once()
