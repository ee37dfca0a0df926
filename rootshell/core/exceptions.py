"""
Exceptions raised by shell sessions.
"""


class ShellError(Exception):
    """Base class for every session failure."""


class SpawnError(ShellError):
    """The shell process could not be started."""


class IOFailure(ShellError):
    """The shell's streams broke or the process died."""


class TimeoutFailure(ShellError):
    """No completion marker arrived within the allotted wait."""


class PermissionDenied(ShellError):
    """Elevation was refused."""


class Interrupted(ShellError):
    """The waiting caller was interrupted."""
