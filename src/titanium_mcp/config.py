"""Runtime configuration sourced from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_CLI_PATH = "appc"
DEFAULT_CLI_LOG_LEVEL = "info"
DEFAULT_DISTRIBUTION_OUTPUT_DIR = "dist"

CLI_LOG_LEVELS = frozenset({"trace", "debug", "info", "warn", "error"})

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_flag(value: str | None, default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class TitaniumConfig:
    """Settings for driving the Titanium CLI."""

    cli_path: str = DEFAULT_CLI_PATH
    """Executable used for every CLI invocation (appc or ti)."""

    log_level: str = DEFAULT_CLI_LOG_LEVEL
    """Default --log-level passed to the CLI."""

    use_terminal_for_build: bool = False
    """Send build commands to a terminal instead of capturing their output."""

    distribution_output_directory: str = DEFAULT_DISTRIBUTION_OUTPUT_DIR
    """Package output directory, relative paths resolve against the project."""

    state_file: str | None = None
    """JSON file for last debug session state, in-memory when unset."""

    def __post_init__(self) -> None:
        self.log_level = self.log_level.strip().lower()
        if self.log_level not in CLI_LOG_LEVELS:
            raise ValueError(
                f"Invalid CLI log level: {self.log_level} "
                f"(expected one of {', '.join(sorted(CLI_LOG_LEVELS))})"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TitaniumConfig:
        """Load configuration from TITANIUM_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            cli_path=env.get("TITANIUM_CLI_PATH") or DEFAULT_CLI_PATH,
            log_level=env.get("TITANIUM_LOG_LEVEL") or DEFAULT_CLI_LOG_LEVEL,
            use_terminal_for_build=_env_flag(env.get("TITANIUM_USE_TERMINAL_FOR_BUILD")),
            distribution_output_directory=(
                env.get("TITANIUM_DISTRIBUTION_OUTPUT_DIR") or DEFAULT_DISTRIBUTION_OUTPUT_DIR
            ),
            state_file=env.get("TITANIUM_STATE_FILE") or None,
        )

    def distribution_output_dir(self, project_dir: str) -> str:
        """Absolute package output directory for a project."""
        directory = self.distribution_output_directory
        if not os.path.isabs(directory):
            return os.path.join(project_dir, directory)
        return directory
