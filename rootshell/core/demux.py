"""
OutputDemultiplexer: attributes each output line to the command that produced it.
"""
import logging
import re
from collections import deque
from typing import Callable, Deque, Optional

from .command import Command
from .command_queue import CommandQueue
from .config import MARKER_PREFIX, DENIAL_PATTERNS
from .models import FailureKind

logger = logging.getLogger(__name__)

MARKER_PATTERN = re.compile(re.escape(MARKER_PREFIX) + r' (\d+) (\d+)')
DENIAL_PATTERN = re.compile('|'.join(DENIAL_PATTERNS), re.IGNORECASE)


def marker_command(command_id: int) -> str:
    """
    The shell line that reports completion of command_id.

    The leading newline ends any partial output line, so the marker always
    arrives as a line of its own. The prefix sits inside the format string,
    which keeps an xtrace of this line from ever looking like the marker.
    """
    return f"printf '\\n{MARKER_PREFIX} %s %s\\n' {command_id} \"$?\""


class OutputDemultiplexer:
    """
    Routes lines from the shell's merged stdout/stderr.

    A marker line for the current command resolves it and triggers the next
    dispatch. Commands abandoned while in flight (timeout, interrupt) are
    "stale": the shell is still running them, so everything up to and
    including their marker is discarded.

    An empty line is held back for one line: if a marker follows, it was the
    separator printed by the marker command and is dropped.
    """

    def __init__(self, queue: CommandQueue, dispatch: Callable[[], None]):
        self._queue = queue
        self._dispatch = dispatch
        self._stale: Deque[int] = deque()
        self._blank_held = False
        self.denied = False

    @property
    def stale_ids(self):
        return list(self._stale)

    def abandon(self, command_id: int):
        with self._queue.lock:
            self._stale.append(command_id)

    def feed(self, raw: str):
        line = raw.rstrip('\r\n')
        with self._queue.lock:
            match = MARKER_PATTERN.fullmatch(line)
            marker_id = int(match.group(1)) if match else None
            separator, self._blank_held = self._blank_held, False

            if self._stale:
                if marker_id in self._stale:
                    while self._stale and self._stale.popleft() != marker_id:
                        pass
                    logger.debug("Discarded late completion of command %s", marker_id)
                return

            current = self._queue.current
            if current is not None and marker_id == current.id:
                self.denied = False
                self._queue.mark_current_finished(int(match.group(2)))
                self._dispatch()
                return

            if separator:
                self._route(current, '')
            if not line:
                self._blank_held = True
                return
            self._route(current, line)

    def _route(self, current: Optional[Command], line: str):
        if current is None:
            if line:
                logger.debug("Dropped output with no command in flight: %r", line[:200])
            return
        if DENIAL_PATTERN.search(line):
            self.denied = True
        current.update(line)

    def handle_eof(self) -> Optional[FailureKind]:
        """
        The process is gone. Fail everything still pending.

        Denial output seen during the in-flight command means su refused
        us and exited, which is reported as PERMISSION_DENIED rather than a
        generic I/O failure. Returns None if the queue was already closed.
        """
        with self._queue.lock:
            self._blank_held = False
            if self._queue.closed:
                return None
            kind = FailureKind.PERMISSION_DENIED if self.denied else FailureKind.IO_FAILURE
            failed = self._queue.close(kind)
            self._stale.clear()
        if failed:
            logger.warning("Shell died; failed %d command(s) with %s", len(failed), kind.value)
        return kind
