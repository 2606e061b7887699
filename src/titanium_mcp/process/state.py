"""Process state management and result types.

State machine for process sessions:
IDLE → RUNNING → SUCCEEDED | FAILED | CANCELLED
     ↑_______________________________|
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProcessState(str, Enum):
    """Process session state machine states."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class CommandResult:
    """Outcome of a captured-output run."""

    command: str
    exit_code: int | None = None
    cancelled: bool = False
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        """Whether the command exited with code 0."""
        return not self.cancelled and self.exit_code == 0

    @property
    def state(self) -> ProcessState:
        """Terminal state this result corresponds to."""
        if self.cancelled:
            return ProcessState.CANCELLED
        return ProcessState.SUCCEEDED if self.success else ProcessState.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "success": self.success,
            "state": self.state.value,
            "command": self.command,
            "durationMs": round(self.duration_ms, 2),
        }
        if self.exit_code is not None:
            result["exitCode"] = self.exit_code
        if self.cancelled:
            result["cancelled"] = True
        return result

    def to_summary(self) -> str:
        """Generate human-readable summary."""
        if self.cancelled:
            status = "[CANCELLED] Command cancelled"
        elif self.success:
            status = "[OK] Command succeeded"
        else:
            status = f"[FAILED] Command exited with code {self.exit_code}"
        return "\n".join(
            [
                status,
                f"  Command: {self.command}",
                f"  Duration: {self.duration_ms:.0f}ms",
            ]
        )


@dataclass
class CommandResponse:
    """Accumulated output of a buffered run."""

    stdout: str
    stderr: str
