"""
CommandQueue: ordered, thread-safe queue feeding one shell session.
"""
import threading
from collections import deque
from typing import Callable, Deque, List, Optional

from .command import Command
from .exceptions import IOFailure
from .models import CommandState, FailureKind


class CommandQueue:
    """
    FIFO of submitted commands with exactly one "current" command.

    The queue's condition is the single exclusion discipline for its
    session: the pending list, the current pointer, command resolution and
    writes to the shell all happen while it is held. The lock is re-entrant
    so hooks fired under it may submit further commands.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.RLock())
        self._pending: Deque[Command] = deque()
        self._current: Optional[Command] = None
        self._next_id = 1
        self._closed = False

    @property
    def lock(self) -> threading.Condition:
        return self._cond

    @property
    def current(self) -> Optional[Command]:
        return self._current

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def drained(self) -> bool:
        with self._cond:
            return self._current is None and not self._pending

    def __len__(self):
        with self._cond:
            return len(self._pending) + (1 if self._current else 0)

    def enqueue(self, command: Command) -> Command:
        with self._cond:
            if self._closed:
                raise IOFailure("Shell session is closed.")
            if command.id is not None:
                raise ValueError(f"{command!r} was already submitted.")
            command.id = self._next_id
            self._next_id += 1
            self._pending.append(command)
            return command

    def dequeue_next(self) -> Optional[Command]:
        """Promote the head to current if nothing is in flight."""
        with self._cond:
            if self._closed or self._current is not None or not self._pending:
                return None
            self._current = self._pending.popleft()
            self._current.state = CommandState.RUNNING
            return self._current

    def mark_current_finished(self, exit_code: int) -> Optional[Command]:
        with self._cond:
            command = self._current
            if command is None:
                return None
            self._current = None
            command.finish(exit_code)
            self._cond.notify_all()
            return command

    def fail_current(self, kind: FailureKind) -> Optional[Command]:
        with self._cond:
            command = self._current
            if command is None:
                return None
            self._current = None
            command.fail(kind)
            self._cond.notify_all()
            return command

    def remove(self, command: Command, kind: FailureKind) -> bool:
        """Fail a command that has not been dispatched yet."""
        with self._cond:
            try:
                self._pending.remove(command)
            except ValueError:
                return False
            command.fail(kind)
            self._cond.notify_all()
            return True

    def close(self, kind: FailureKind) -> List[Command]:
        """Fail the current and every queued command identically."""
        with self._cond:
            if self._closed:
                return []
            self._closed = True
            failed = []
            if self._current is not None:
                failed.append(self._current)
                self._current = None
            failed.extend(self._pending)
            self._pending.clear()
            for command in failed:
                command.fail(kind)
            self._cond.notify_all()
            return failed

    def wait_until(self, predicate: Callable[[], bool], timeout: Optional[float]) -> bool:
        """Wait on the queue's condition. Returns the predicate's final value."""
        with self._cond:
            return self._cond.wait_for(predicate, timeout)
