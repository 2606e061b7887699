"""Host capabilities used by process sessions.

A session never talks to a UI directly. It reports through a Notifier and
writes interactive commands into a Terminal, both injected by the host.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """User-facing notifications."""

    def show_info(self, message: str) -> None: ...

    def show_error(self, message: str) -> None: ...


class Terminal(Protocol):
    """A visible, user-owned shell."""

    name: str

    def send_text(self, text: str) -> None: ...

    def show(self) -> None: ...

    def clear(self) -> None: ...

    def dispose(self) -> None: ...


@dataclass
class Notification:
    """A message surfaced to the user."""

    level: str
    message: str


@dataclass
class LoggingNotifier:
    """Notifier that logs messages and keeps them for the next tool response."""

    messages: list[Notification] = field(default_factory=list)

    def show_info(self, message: str) -> None:
        logger.info(message)
        self.messages.append(Notification("info", message))

    def show_error(self, message: str) -> None:
        logger.error(message)
        self.messages.append(Notification("error", message))

    def drain(self) -> list[Notification]:
        """Return and forget pending messages."""
        pending, self.messages = self.messages, []
        return pending


class ShellTerminal:
    """Runs each command line in a detached shell.

    Output goes to the server's stderr, never to stdout (the MCP transport).
    Commands are not awaited, so invocations may overlap.
    """

    def __init__(self, name: str, cwd: str | None = None):
        self.name = name
        self.cwd = cwd
        self._processes: list[subprocess.Popen[bytes]] = []

    def send_text(self, text: str) -> None:
        logger.info(f"[{self.name}] $ {text}")
        self._processes = [p for p in self._processes if p.poll() is None]
        self._processes.append(
            subprocess.Popen(
                text,
                shell=True,
                cwd=self.cwd,
                stdin=subprocess.DEVNULL,
                stdout=sys.stderr,
                stderr=sys.stderr,
            )
        )

    def show(self) -> None:
        logger.debug(f"Terminal {self.name} shown")

    def clear(self) -> None:
        # Output is shared with the server log, nothing to clear
        pass

    def dispose(self) -> None:
        self._processes.clear()
