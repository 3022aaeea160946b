"""Shell configuration with Pydantic validation and env var substitution."""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

HISTORY_FILE_NAME = ".dbshell"
RC_FILE_NAME = ".dbshellrc.json"
LOG_FILE_NAME = ".dbshell.log"


class ShellConfig(BaseModel):
    """Settings for one interactive shell process."""
    # Persisted statement history, loaded at start and saved at exit
    history_file: Path = Field(default_factory=lambda: Path(HISTORY_FILE_NAME))

    # Startup script; None when no home directory is known
    rc_file: Optional[Path] = None

    # Prompt shown while a statement is incomplete. Line sources that echo
    # the prompt back into the text have it stripped again.
    continuation_prompt: str = "... "

    # Statements matching this pattern never reach the history file
    sensitive_pattern: str = r"\.auth"

    # Kill matching remote operations without asking
    auto_kill_op: bool = False

    # Skip kill coordination altogether
    no_kill_op: bool = False

    quiet: bool = False

    # External editor for the "edit" directive; None disables it
    editor: Optional[str] = None

    # Client identity reported to the server, used to recognise our own ops
    app_name: str = Field(default_factory=lambda: f"dbshell-{os.getpid()}")

    @property
    def sensitive_regex(self) -> re.Pattern:
        return re.compile(self.sensitive_pattern)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> "ShellConfig":
        """
        Build per-user defaults from the environment.

        HOME selects the history and startup-script locations. Without it the
        history file lives in the working directory and no startup script is
        run. EDITOR enables the edit directive.
        """
        environ = os.environ if environ is None else environ
        values: dict = {}

        home = environ.get("HOME")
        if home:
            values["history_file"] = Path(home) / HISTORY_FILE_NAME
            values["rc_file"] = Path(home) / RC_FILE_NAME

        editor = environ.get("EDITOR")
        if editor:
            values["editor"] = editor

        values.update(overrides)
        return cls.model_validate(values)

    @classmethod
    def from_yaml(cls, path: str | Path, environ: Optional[dict] = None, **overrides) -> "ShellConfig":
        """
        Load config from YAML file with env var substitution.

        Values in the file take precedence over environment defaults, and
        explicit overrides (usually from the command line) take precedence
        over both.

        Args:
            path: Path to the YAML file
            environ: Environment mapping, defaults to os.environ
            **overrides: Final field values

        Returns:
            Merged ShellConfig
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            raw_content = f.read()

        substituted = _substitute_env_vars(raw_content, environ)
        data = yaml.safe_load(substituted) or {}

        base = cls.from_env(environ)
        merged = base.model_dump()
        merged.update(data)
        merged.update(overrides)
        return cls.model_validate(merged)


def _substitute_env_vars(content: str, environ: Optional[dict] = None) -> str:
    """Replace ${VAR_NAME} with environment variable values."""
    environ = os.environ if environ is None else environ
    pattern = re.compile(r'\$\{([^}]+)\}')

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = environ.get(var_name)
        if value is None:
            raise ValueError(f"Environment variable not set: {var_name}")
        return value

    return pattern.sub(replacer, content)
