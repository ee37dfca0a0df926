"""
Core module for rootshell.
Contains models, configuration, the command queue, the output
demultiplexer, shell sessions and the manager.
"""
from .models import (
    ShellType, CommandState, FailureKind, CommandResult, RunResult
)
from .exceptions import (
    ShellError, SpawnError, IOFailure, TimeoutFailure,
    PermissionDenied, Interrupted
)
from .config import (
    SU_BINARY, SH_BINARY, MARKER_PREFIX, DENIAL_PATTERNS,
    ROOT_ID_TOKEN, DEFAULT_COMMAND_TIMEOUT, PERMISSION_EXPIRE_SECONDS
)
from .command import Command
from .command_queue import CommandQueue
from .demux import OutputDemultiplexer
from .permission import PermissionCache
from .shell import ShellSession
from .manager import ShellManager

__all__ = [
    # Models
    "ShellType",
    "CommandState",
    "FailureKind",
    "CommandResult",
    "RunResult",
    # Errors
    "ShellError",
    "SpawnError",
    "IOFailure",
    "TimeoutFailure",
    "PermissionDenied",
    "Interrupted",
    # Config
    "SU_BINARY",
    "SH_BINARY",
    "MARKER_PREFIX",
    "DENIAL_PATTERNS",
    "ROOT_ID_TOKEN",
    "DEFAULT_COMMAND_TIMEOUT",
    "PERMISSION_EXPIRE_SECONDS",
    # Components
    "Command",
    "CommandQueue",
    "OutputDemultiplexer",
    "PermissionCache",
    "ShellSession",
    "ShellManager",
]
