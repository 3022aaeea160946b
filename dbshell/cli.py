# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Command-line interface for dbshell."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from pymongo.errors import PyMongoError
from rich.console import Console

from dbshell import __version__
from dbshell.client.connection import ConnectionLayer, EndpointRegistry, replica_set_state
from dbshell.core.config import LOG_FILE_NAME, RC_FILE_NAME, ShellConfig
from dbshell.core.errors import BadInvocationError, ExitCode
from dbshell.core.programs import ProgramRegistry
from dbshell.repl.interactive import ShellREPL
from dbshell.repl.killops import KillCoordinator
from dbshell.repl.line_source import PromptLineSource, RuntimeCompleter, StreamLineSource
from dbshell.repl.signals import CancellationBridge, SessionContext
from dbshell.runtime.commands import CommandRuntime
from dbshell.storage.history import ShellHistory

logger = logging.getLogger(__name__)

console = Console()

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = "27017"
DEFAULT_ADDRESS = "test"
SCRIPT_SUFFIXES = (".js", ".json")


def resolve_connection_uri(address: str, host: Optional[str] = None, port: Optional[str] = None) -> str:
    """Turn the db address and --host/--port into a connection URI.

    Address forms:
        foo                  foo database on the local machine
        192.168.0.5          test database on 192.168.0.5
        192.168.0.5/foo      foo database on 192.168.0.5
        192.168.0.5:9999/foo foo database on 192.168.0.5 port 9999
        mongodb://...        used as given

    Raises:
        BadInvocationError: if the address has a path and host or port is
            also given separately
    """
    if address.startswith(("mongodb://", "mongodb+srv://")):
        if host or port:
            raise BadInvocationError("url can't have host or port if you specify them individually")
        return address

    if not host and not port:
        if "/" not in address:
            tail = address[address.rfind(":") + 1:] if ":" in address else ""
            if "." in address or tail[:1].isdigit():
                address += "/" + DEFAULT_ADDRESS
            else:
                address = f"{DEFAULT_HOST}:{DEFAULT_PORT}/{address}"
        return f"mongodb://{address}"

    if "/" in address:
        raise BadInvocationError("url can't have host or port if you specify them individually")

    host = host or DEFAULT_HOST
    if ":" in host and not host.startswith("["):
        # bare IPv6 literal
        host = f"[{host}]"
        if not port:
            port = DEFAULT_PORT
    if port:
        server = f"{host}:{port}"
    elif ":" in host:
        server = host
    else:
        server = f"{host}:{DEFAULT_PORT}"
    return f"mongodb://{server}/{address}"


def is_script_path(arg: str) -> bool:
    """Decide whether the first positional argument is a script, not an address.

    An argument is an address if its last path component has no dot, or if
    it does not end in a script suffix and names no existing file.
    """
    basename = arg.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in basename:
        return False
    if not basename.endswith(SCRIPT_SUFFIXES) and not Path(arg).exists():
        return False
    return True


def _configure_logging(verbose: bool) -> Optional[Path]:
    if not verbose:
        return None
    home = os.environ.get("HOME")
    log_file = Path(home) / LOG_FILE_NAME if home else Path(LOG_FILE_NAME)
    file_handler = logging.FileHandler(log_file, mode='a')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger('dbshell').addHandler(file_handler)
    logging.getLogger('dbshell').setLevel(logging.DEBUG)
    return log_file


def _make_line_source(context: SessionContext, history: ShellHistory, runtime: CommandRuntime):
    if sys.stdin.isatty():
        return PromptLineSource(context, history, completer=RuntimeCompleter(runtime))
    return StreamLineSource(context, history)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="dbshell")
@click.argument("dbaddress", required=False)
@click.argument("files", nargs=-1)
@click.option("--shell", "run_shell", is_flag=True, help="Run the shell after executing files.")
@click.option("--nodb", is_flag=True, help="Don't connect on startup; no db address is expected.")
@click.option("--norc", is_flag=True, help=f"Don't run the ~/{RC_FILE_NAME} startup file.")
@click.option("--quiet", is_flag=True, help="Be less chatty.")
@click.option("--port", help="Port to connect to.")
@click.option("--host", help="Server to connect to.")
@click.option("--eval", "script", help="Evaluate a statement and exit.")
@click.option("--username", "-u", help="Username for authentication.")
@click.option(
    "--password", "-p",
    is_flag=False, flag_value="", default=None,
    help="Password for authentication (prompted when given without a value).",
)
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True),
    help="Path to a config YAML file.",
)
@click.option("--verbose", is_flag=True, help="Write debug logs to ~/.dbshell.log.")
@click.option("--nokillop", is_flag=True, hidden=True)
@click.option("--autokillop", is_flag=True, hidden=True)
def main(
    dbaddress: Optional[str],
    files: tuple[str, ...],
    run_shell: bool,
    nodb: bool,
    norc: bool,
    quiet: bool,
    port: Optional[str],
    host: Optional[str],
    script: Optional[str],
    username: Optional[str],
    password: Optional[str],
    config_path: Optional[str],
    verbose: bool,
    nokillop: bool,
    autokillop: bool,
):
    """dbshell - interactive shell for a MongoDB data store.

    \b
    Examples:
        dbshell                         test database on the local machine
        dbshell 192.168.0.5:9999/foo    foo database on a remote server
        dbshell foo setup.js            run a script against foo, then exit
        dbshell --nodb --shell          shell without a connection
    """
    overrides = {}
    if quiet:
        overrides["quiet"] = True
    if nokillop:
        overrides["no_kill_op"] = True
    if autokillop:
        overrides["auto_kill_op"] = True

    try:
        if config_path:
            config = ShellConfig.from_yaml(config_path, **overrides)
        else:
            config = ShellConfig.from_env(**overrides)
    except Exception as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(ExitCode.BAD_INVOCATION)

    log_file = _configure_logging(verbose)
    if log_file and not config.quiet:
        console.print(f"[dim]Debug logs: {log_file}[/dim]")

    files = list(files)
    address = DEFAULT_ADDRESS
    if dbaddress is not None:
        if nodb or is_script_path(dbaddress):
            files.insert(0, dbaddress)
        else:
            address = dbaddress

    if address == "*":
        raise click.UsageError('"*" is an invalid db address')

    if not config.quiet:
        console.print(f"dbshell version: {__version__}")

    context = SessionContext()
    registry = EndpointRegistry()
    programs = ProgramRegistry()

    client_options = {}
    if password is not None and not password:
        password = click.prompt("Enter password", hide_input=True, err=True)
    if username and password:
        client_options.update(username=username, password=password)

    connections = ConnectionLayer(registry, app_name=config.app_name, **client_options)
    runtime = CommandRuntime(connections, console=console)

    kill_coordinator = KillCoordinator(
        registry,
        connections,
        context,
        auto_kill=config.auto_kill_op,
        disabled=config.no_kill_op,
        console=console,
    )
    repl: Optional[ShellREPL] = None

    def on_terminate() -> None:
        if repl is not None:
            repl.terminate()
        else:
            kill_coordinator.kill_tracked_operations()

    bridge = CancellationBridge(context, on_terminate=on_terminate, programs=programs)
    bridge.install()
    try:
        if not nodb:
            try:
                uri = resolve_connection_uri(address, host, port)
            except BadInvocationError as e:
                raise click.UsageError(str(e))
            if not config.quiet:
                console.print(f"connecting to: {uri}")
            try:
                runtime.connect(uri)
            except (PyMongoError, ValueError) as e:
                console.print(f"[red]exception:[/red] {e}")
                sys.exit(ExitCode.CONNECT_FAILURE)

        if run_shell:
            console.print('type "help" for help')

        if script:
            result = runtime.run_statement(script)
            if not result.ok:
                console.print(f"[red]error:[/red] {result.error}")
                sys.exit(ExitCode.EVAL_FAILURE)
            runtime.render(result.value)

        for path in files:
            if len(files) > 1:
                console.print(f"loading file: {path}")
            if not runtime.execute_file(path):
                console.print(f"failed to load: {path}")
                sys.exit(ExitCode.FILE_LOAD_FAILURE)

        if not files and not script:
            run_shell = True

        if run_shell:
            if not norc and config.rc_file is not None and config.rc_file.exists():
                if not runtime.execute_file(config.rc_file):
                    console.print(
                        f'The "{config.rc_file.name}" file located in your home folder could not be executed'
                    )
                    sys.exit(ExitCode.STARTUP_SCRIPT_FAILURE)

            history = ShellHistory(config.history_file, config.sensitive_regex)
            repl = ShellREPL(
                config,
                runtime,
                _make_line_source(context, history, runtime),
                history,
                context=context,
                kill_coordinator=kill_coordinator,
                programs=programs,
                console=console,
                server_state=lambda: replica_set_state(runtime.client),
            )
            repl.run()
    finally:
        bridge.uninstall()
        runtime.close()
        registry.clear()

    sys.exit(ExitCode.CLEAN)


if __name__ == "__main__":
    main()
