"""
ShellSession: one long-lived shell process and the commands queued on it.
"""
import logging
import os
import signal
import subprocess
import threading
import time
from typing import List, Optional

import pexpect
from pexpect.popen_spawn import PopenSpawn

from .command import Command
from .command_queue import CommandQueue
from .config import (
    SU_BINARY, SH_BINARY, DEFAULT_COMMAND_TIMEOUT,
    CLOSE_GRACE_SECONDS, READER_JOIN_SECONDS
)
from .demux import OutputDemultiplexer, marker_command
from .exceptions import SpawnError, IOFailure, TimeoutFailure
from .models import ShellType, FailureKind, CommandResult, error_for

logger = logging.getLogger(__name__)


def default_argv(shell_type: ShellType) -> List[str]:
    """argv used to spawn a shell of the given type."""
    return [SU_BINARY] if shell_type == ShellType.ROOT else [SH_BINARY]


class ShellSession:
    """
    A single shell process, root or non-root.

    Commands are written to the shell one at a time, in submission order.
    A background reader feeds every output line to the demultiplexer until
    the process exits or the session is closed.
    """

    def __init__(self, shell_type: ShellType = ShellType.ROOT, argv: Optional[List[str]] = None):
        self.shell_type = shell_type
        self.argv = list(argv) if argv else default_argv(shell_type)
        self._process: Optional[PopenSpawn] = None
        self._reader: Optional[threading.Thread] = None
        self._queue = CommandQueue()
        self._demux = OutputDemultiplexer(self._queue, self._dispatch_next)
        self._death: Optional[FailureKind] = None
        self._last_activity: float = 0

    def __repr__(self):
        state = "closed" if self.closed else "open" if self._process else "new"
        return f"ShellSession({self.shell_type.value}, {state})"

    def __enter__(self) -> "ShellSession":
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def elevated(self) -> bool:
        return self.shell_type == ShellType.ROOT

    @property
    def closed(self) -> bool:
        return self._queue.closed

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    # ==================== lifecycle ====================

    def start(self) -> "ShellSession":
        """Spawn the shell and its reader. Raises SpawnError."""
        with self._queue.lock:
            if self.closed:
                raise IOFailure("Shell session is closed.")
            if self._process is not None:
                return self

            try:
                self._process = PopenSpawn(
                    self.argv,
                    timeout=None,
                    encoding="utf-8",
                    codec_errors="replace",
                    preexec_fn=os.setsid,
                )
            except OSError as e:
                # A session that never started cannot be reused
                self._queue.close(FailureKind.IO_FAILURE)
                raise SpawnError(f"Could not start {self.argv[0]}: {e}") from e

            self._last_activity = time.time()
            self._reader = threading.Thread(
                target=self._read_loop,
                name=f"rootshell-reader-{self._process.pid}",
                daemon=True,
            )
            self._reader.start()
            logger.info("Started %s shell (pid %s): %s", self.shell_type.value, self._process.pid, self.argv)
            return self

    def is_alive(self) -> bool:
        if self.closed or self._process is None:
            return False
        return self._process.proc.poll() is None

    def close(self):
        """Fail everything pending, then stop the shell and the reader."""
        with self._queue.lock:
            self._queue.close(FailureKind.IO_FAILURE)
            process = self._process
        if process is None:
            return

        self._stop_process(process)
        if self._reader is not None and self._reader is not threading.current_thread():
            self._reader.join(READER_JOIN_SECONDS)
            if self._reader.is_alive():
                logger.warning("Reader for pid %s did not exit; leaving it as a daemon", process.pid)

    def _stop_process(self, process: PopenSpawn):
        try:
            process.sendeof()
        except OSError:
            pass
        try:
            process.proc.wait(CLOSE_GRACE_SECONDS)
            return
        except subprocess.TimeoutExpired:
            pass

        for sig in (signal.SIGTERM, signal.SIGKILL):
            try:
                os.killpg(process.pid, sig)
            except ProcessLookupError:
                return
            except PermissionError:
                # su runs setuid; we may not be allowed to signal it
                logger.warning("Not permitted to signal shell pid %s", process.pid)
                return
            try:
                process.proc.wait(CLOSE_GRACE_SECONDS)
                return
            except subprocess.TimeoutExpired:
                continue
        logger.warning("Shell pid %s survived SIGKILL", process.pid)

    def _read_loop(self):
        process = self._process
        try:
            while True:
                line = process.readline()
                if not line:
                    break
                self._last_activity = time.time()
                self._demux.feed(line)
        except (OSError, pexpect.ExceptionPexpect) as e:
            logger.warning("Reading from shell pid %s failed: %s", process.pid, e)
        with self._queue.lock:
            kind = self._demux.handle_eof()
            if kind is not None:
                self._death = kind
        if kind is not None:
            logger.info("Shell pid %s exited (%s)", process.pid, kind.value)

    # ==================== commands ====================

    def submit(self, command: Command) -> Command:
        """Queue a command; it is written to the shell when its turn comes."""
        if self._process is None:
            self.start()
        with self._queue.lock:
            self._queue.enqueue(command)
            self._dispatch_next()
        return command

    def _dispatch_next(self):
        with self._queue.lock:
            command = self._queue.dequeue_next()
            if command is None:
                return
            payload = f"{command.text}\n{marker_command(command.id)}\n"
            try:
                self._process.send(payload)
            except (OSError, ValueError) as e:
                logger.warning("Writing command %s to shell failed: %s", command.id, e)
                if self._queue.close(FailureKind.IO_FAILURE):
                    self._death = FailureKind.IO_FAILURE

    def _abandon(self, command: Command, kind: FailureKind):
        """Give up on a command without killing the shell."""
        with self._queue.lock:
            if command.done:
                return
            if self._queue.current is command:
                self._demux.abandon(command.id)
                self._queue.fail_current(kind)
                self._dispatch_next()
            else:
                self._queue.remove(command, kind)

    def interrupt(self, command: Command):
        """Resolve a command as interrupted, waking whoever waits on it."""
        self._abandon(command, FailureKind.INTERRUPTED)

    def wait_for_command(self, command: Command, timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT) -> CommandResult:
        """
        Block until the command resolves.

        Returns the result when the marker was seen, whatever the exit code.
        Raises TimeoutFailure, IOFailure, PermissionDenied or Interrupted.
        """
        try:
            done = self._queue.wait_until(lambda: command.done, timeout)
        except KeyboardInterrupt:
            self._abandon(command, FailureKind.INTERRUPTED)
            raise
        if not done:
            self._abandon(command, FailureKind.TIMEOUT)
            # The marker may have won the race against the abandon
            if command.failure == FailureKind.TIMEOUT:
                raise TimeoutFailure(f"Command {command.id} timed out after {timeout}s: {command.text[:100]}")
        result = command.result()
        result.raise_for_failure()
        return result

    def wait_for_finish(self, timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT):
        """
        Block until every submitted command has resolved.

        On timeout the in-flight command is failed and TimeoutFailure raised;
        commands behind it stay queued. Raises the session's death error if
        the shell died while draining.
        """
        try:
            done = self._queue.wait_until(lambda: self._queue.drained, timeout)
        except KeyboardInterrupt:
            current = self._queue.current
            if current is not None:
                self._abandon(current, FailureKind.INTERRUPTED)
            raise
        if not done:
            current = self._queue.current
            if current is not None:
                self._abandon(current, FailureKind.TIMEOUT)
            raise TimeoutFailure(f"Shell queue did not drain within {timeout}s")
        if self._death is not None:
            raise error_for(self._death, f"Shell session died: {self._death.value}")

    def run(self, text: str, timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT) -> CommandResult:
        """Submit a command and wait for it."""
        return self.wait_for_command(self.submit(Command(text)), timeout)

    def get_status(self) -> dict:
        """Get session status as dict."""
        current = self._queue.current
        return {
            "type": self.shell_type.value,
            "pid": self.pid,
            "alive": self.is_alive(),
            "closed": self.closed,
            "queued": len(self._queue),
            "current": current.text[:100] if current else None,
            "discarding": self._demux.stale_ids,
            "idle_seconds": time.time() - self._last_activity if self._last_activity else None,
        }
