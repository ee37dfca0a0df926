"""
Data models and enums for rootshell.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from .exceptions import (
    ShellError, IOFailure, TimeoutFailure, PermissionDenied, Interrupted
)


class ShellType(Enum):
    NON_ROOT = "non_root"
    ROOT = "root"


class CommandState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"


class FailureKind(Enum):
    INTERRUPTED = "interrupted"
    IO_FAILURE = "io_failure"
    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permission_denied"


_FAILURE_ERRORS = {
    FailureKind.INTERRUPTED: Interrupted,
    FailureKind.IO_FAILURE: IOFailure,
    FailureKind.TIMEOUT: TimeoutFailure,
    FailureKind.PERMISSION_DENIED: PermissionDenied,
}


def error_for(kind: FailureKind, message: str) -> ShellError:
    """Build the exception matching a failure kind."""
    return _FAILURE_ERRORS[kind](message)


def failure_for(error: ShellError) -> Optional[FailureKind]:
    for kind, cls in _FAILURE_ERRORS.items():
        if isinstance(error, cls):
            return kind
    return None


@dataclass
class CommandResult:
    """Final outcome of one submitted command."""
    command_id: int
    text: str
    state: CommandState
    exit_code: Optional[int] = None
    failure: Optional[FailureKind] = None
    output: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == CommandState.FINISHED and self.exit_code == 0

    def raise_for_failure(self):
        """Raise the matching ShellError if the command failed."""
        if self.state == CommandState.FAILED and self.failure is not None:
            raise error_for(
                self.failure,
                f"Command {self.command_id} failed: {self.failure.value}"
            )


@dataclass
class RunResult:
    """What run_command hands back to callers."""
    succeeded: bool
    message: str = ""
    exit_code: Optional[int] = None
    failure: Optional[FailureKind] = None
