"""
ShellManager: owns the root and non-root sessions and runs commands on them.
"""
import logging
import threading
import time
from typing import Dict, List, Optional

from .command import Command
from .config import (
    DEFAULT_COMMAND_TIMEOUT, PERMISSION_EXPIRE_SECONDS,
    ROOT_PROBE_COMMAND, ROOT_ID_TOKEN
)
from .exceptions import ShellError, SpawnError
from .models import ShellType, RunResult, failure_for
from .permission import PermissionCache
from .shell import ShellSession

logger = logging.getLogger(__name__)


class ShellManager:
    """
    At most one live session per shell type.

    Sessions start lazily on first use. A session whose shell died is
    replaced on the next call; the command that saw it die is not retried.
    """

    def __init__(
        self,
        argv: Optional[Dict[ShellType, List[str]]] = None,
        permission_ttl: float = PERMISSION_EXPIRE_SECONDS,
        clock=time.monotonic,
    ):
        self._argv = dict(argv or {})
        self._sessions: Dict[ShellType, ShellSession] = {}
        self._lock = threading.Lock()
        self._permission = PermissionCache(self._probe_root, permission_ttl, clock)

    def __enter__(self) -> "ShellManager":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop_all()

    @property
    def permission(self) -> PermissionCache:
        return self._permission

    def open_session(self, elevated: bool = True) -> ShellSession:
        """Return the live session for this identity, starting one if needed."""
        stype = ShellType.ROOT if elevated else ShellType.NON_ROOT
        with self._lock:
            session = self._sessions.get(stype)
            if session is not None and not session.closed:
                return session
            if session is not None:
                # Reap the exited shell before replacing it
                session.close()
            session = ShellSession(stype, self._argv.get(stype))
            session.start()
            self._sessions[stype] = session
            return session

    def close_session(self, elevated: bool = True) -> bool:
        stype = ShellType.ROOT if elevated else ShellType.NON_ROOT
        with self._lock:
            session = self._sessions.pop(stype, None)
        if session is None:
            return False
        session.close()
        return True

    def stop_all(self) -> int:
        """Stop all sessions. Returns how many were open."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()
        return len(sessions)

    def list_sessions(self) -> List[dict]:
        with self._lock:
            sessions = list(self._sessions.values())
        return [session.get_status() for session in sessions]

    def run_command(
        self,
        command: str,
        elevated: bool = True,
        timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
    ) -> RunResult:
        """
        Run one command and wait for it.

        Never raises ShellError: spawn failures, timeouts, denial, broken
        shells and interrupts come back as a failed RunResult with a reason.
        """
        if not command or not command.strip():
            return RunResult(succeeded=False, message="Empty command.")

        try:
            session = self.open_session(elevated)
            result = session.run(command, timeout)
        except SpawnError as e:
            return RunResult(succeeded=False, message=str(e))
        except ShellError as e:
            return RunResult(succeeded=False, message=str(e), failure=failure_for(e))

        return RunResult(
            succeeded=result.succeeded,
            message='\n'.join(result.output),
            exit_code=result.exit_code,
        )

    def run_commands(
        self,
        commands: List[str],
        elevated: bool = True,
        stop_on_error: bool = False,
        timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
    ) -> List[RunResult]:
        """Run commands in sequence, optionally stopping at the first failure."""
        results = []
        for command in commands:
            result = self.run_command(command, elevated, timeout)
            results.append(result)
            if stop_on_error and not result.succeeded:
                break
        return results

    def check_elevated(self, ttl: Optional[float] = None) -> bool:
        """Whether the root shell really runs as uid 0, cached for ttl seconds."""
        return self._permission.check_elevated(ttl)

    def _probe_root(self) -> bool:
        seen_root = []

        def on_update(_command_id: int, line: str):
            if ROOT_ID_TOKEN in line.lower():
                seen_root.append(line)

        try:
            session = self.open_session(elevated=True)
            probe = session.submit(Command(ROOT_PROBE_COMMAND, on_update=on_update))
            session.wait_for_command(probe, DEFAULT_COMMAND_TIMEOUT)
        except ShellError as e:
            logger.info("Root probe failed: %s", e)
            return False
        return bool(seen_root)
