"""
rootshell - run shell commands as root (or not) over one long-lived shell.
"""
from .core.models import ShellType, CommandState, FailureKind, CommandResult, RunResult
from .core.exceptions import (
    ShellError, SpawnError, IOFailure, TimeoutFailure, PermissionDenied, Interrupted
)
from .core.command import Command
from .core.shell import ShellSession
from .core.manager import ShellManager

__all__ = [
    "ShellType",
    "CommandState",
    "FailureKind",
    "CommandResult",
    "RunResult",
    "ShellError",
    "SpawnError",
    "IOFailure",
    "TimeoutFailure",
    "PermissionDenied",
    "Interrupted",
    "Command",
    "ShellSession",
    "ShellManager",
]
