"""Titanium CLI process orchestration.

Provides:
- Interactive terminal, captured, background and buffered run modes
- Single-flight guard for captured runs with an observable running flag
- Kill-on-cancel for the live process
- Task execution for declarative build/package tasks
"""

from .host import LoggingNotifier, Notifier, ShellTerminal, Terminal
from .output import OutputSink
from .session import BUILD_IN_PROGRESS_MESSAGE, ProcessSession
from .state import CommandResponse, CommandResult, ProcessState
from .task import (
    TaskDefinition,
    TaskExecution,
    TaskExecutionContext,
    TaskKind,
    TaskResult,
    generate_task,
)

__all__ = [
    "ProcessSession",
    "ProcessState",
    "CommandResult",
    "CommandResponse",
    "OutputSink",
    "Notifier",
    "LoggingNotifier",
    "Terminal",
    "ShellTerminal",
    "BUILD_IN_PROGRESS_MESSAGE",
    "TaskDefinition",
    "TaskExecution",
    "TaskExecutionContext",
    "TaskKind",
    "TaskResult",
    "generate_task",
]
