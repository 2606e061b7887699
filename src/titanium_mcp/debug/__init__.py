"""Debug configuration resolution."""

from .environment import CliDeviceCatalog, DeviceCatalog
from .prompts import ElicitationPrompter, PickItem, Prompter
from .resolver import DebugConfigurationResolver
from .state import (
    DebugConfiguration,
    JsonFileStateStore,
    LastDebugState,
    MemoryStateStore,
    RequestKind,
    StateStore,
)

__all__ = [
    "DebugConfiguration",
    "DebugConfigurationResolver",
    "LastDebugState",
    "RequestKind",
    "StateStore",
    "MemoryStateStore",
    "JsonFileStateStore",
    "Prompter",
    "PickItem",
    "ElicitationPrompter",
    "DeviceCatalog",
    "CliDeviceCatalog",
]
