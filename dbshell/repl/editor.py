# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""The ``edit <name>`` directive: round-trip a variable through $EDITOR."""

import logging
import re
import shlex
import tempfile
import time
from pathlib import Path
from typing import Optional

from dbshell.core.errors import EditError
from dbshell.core.programs import ProgramRegistry
from dbshell.runtime.base import ScriptRuntime

logger = logging.getLogger(__name__)

EDIT_DIRECTIVE = "edit "

EDITABLE_NAME = re.compile(r"^[A-Za-z0-9_.]+$")

MAX_TEMP_ATTEMPTS = 10


def _temp_path(temp_dir: Path) -> Path:
    now = int(time.time())
    for attempt in range(MAX_TEMP_ATTEMPTS):
        candidate = temp_dir / f"dbshell_edit{now + attempt}.json"
        if not candidate.exists():
            return candidate
    raise EditError(f"couldn't create unique temp file after {MAX_TEMP_ATTEMPTS} attempts")


def edit_variable(
    name: str,
    runtime: ScriptRuntime,
    editor: Optional[str],
    programs: ProgramRegistry,
    temp_dir: Optional[Path] = None,
) -> None:
    """Open ``name`` in the editor and assign the edited text back.

    Raises:
        EditError: with a one-line message for the user
    """
    if not editor:
        raise EditError("please define the EDITOR environment variable")
    if not EDITABLE_NAME.match(name):
        raise EditError("can only edit variable or property")

    try:
        text = runtime.export_variable(name)
    except NotImplementedError as e:
        raise EditError(str(e)) from e
    except Exception as e:
        raise EditError(f"error: {e}") from e

    path = _temp_path(Path(temp_dir or tempfile.gettempdir()))
    try:
        try:
            path.write_text(text)
        except OSError as e:
            raise EditError(f"couldn't create temp file ({path}): {e}") from e

        try:
            status = programs.run(shlex.split(editor) + [str(path)])
        except OSError as e:
            raise EditError(f"failed to launch $EDITOR ({editor}): {e}") from e
        if status != 0:
            raise EditError(f"editor exited with error ({status}), not applying changes")

        try:
            edited = path.read_text()
        except OSError as e:
            raise EditError(f"failed to read temp file: {e}") from e
    finally:
        path.unlink(missing_ok=True)

    try:
        runtime.import_variable(name, edited)
    except Exception as e:
        raise EditError(f"error: {e}") from e
    logger.debug("Applied edits to %s", name)
