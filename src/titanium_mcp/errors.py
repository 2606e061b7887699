"""Titanium tooling exceptions."""

from __future__ import annotations

from typing import Any


class TitaniumError(Exception):
    """Base exception for Titanium tooling errors."""

    pass


class UserCancellation(TitaniumError):
    """Raised when the user dismisses an interactive step."""

    def __init__(self, message: str = "User cancelled"):
        super().__init__(message)


class ResolutionCancelled(UserCancellation):
    """Raised when debug configuration resolution stops at a cancelled step."""

    pass


class ConfigurationError(TitaniumError):
    """Raised for unsupported or incomplete configuration combinations."""

    pass


class ProcessFailure(TitaniumError):
    """External command exited with a non-zero code."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"error": str(self)}
        if self.exit_code is not None:
            result["exitCode"] = self.exit_code
        if self.stdout:
            result["stdout"] = self.stdout
        if self.stderr:
            result["stderr"] = self.stderr
        return result
