"""
Command: one unit of work submitted to a shell session.
"""
import logging
from typing import Callable, List, Optional

from .models import CommandState, CommandResult, FailureKind

logger = logging.getLogger(__name__)

UpdateHook = Callable[[int, str], None]
FinishedHook = Callable[[CommandResult], None]


class Command:
    """
    Command text plus two hooks.

    on_update(command_id, line) fires zero or more times, in output order.
    on_finished(result) fires exactly once, after the last update.

    The id is assigned by the queue at submission. Everything except the
    text is mutated only while the owning queue's lock is held.
    """

    def __init__(
        self,
        text: str,
        on_update: Optional[UpdateHook] = None,
        on_finished: Optional[FinishedHook] = None,
    ):
        self.text = text
        self.id: Optional[int] = None
        self.state = CommandState.PENDING
        self.exit_code: Optional[int] = None
        self.failure: Optional[FailureKind] = None
        self.output: List[str] = []
        self._on_update = on_update
        self._on_finished = on_finished

    def __repr__(self):
        return f"Command(id={self.id}, state={self.state.value}, text={self.text[:40]!r})"

    @property
    def done(self) -> bool:
        return self.state in (CommandState.FINISHED, CommandState.FAILED)

    def result(self) -> CommandResult:
        return CommandResult(
            command_id=self.id,
            text=self.text,
            state=self.state,
            exit_code=self.exit_code,
            failure=self.failure,
            output=list(self.output),
        )

    def update(self, line: str):
        if self.done:
            return
        self.output.append(line)
        if self._on_update:
            try:
                self._on_update(self.id, line)
            except Exception:
                # A broken hook must not take down the session's reader
                logger.exception("on_update hook failed for command %s", self.id)

    def finish(self, exit_code: int) -> bool:
        """Resolve as finished. Returns False if already resolved."""
        if self.done:
            return False
        self.state = CommandState.FINISHED
        self.exit_code = exit_code
        self._fire_finished()
        return True

    def fail(self, kind: FailureKind) -> bool:
        """Resolve as failed. Returns False if already resolved."""
        if self.done:
            return False
        self.state = CommandState.FAILED
        self.failure = kind
        self._fire_finished()
        return True

    def _fire_finished(self):
        if self._on_finished:
            try:
                self._on_finished(self.result())
            except Exception:
                logger.exception("on_finished hook failed for command %s", self.id)
