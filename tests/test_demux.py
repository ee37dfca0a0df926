"""Tests for the output demultiplexer, fed by hand without a process."""
from rootshell.core.command import Command
from rootshell.core.command_queue import CommandQueue
from rootshell.core.config import MARKER_PREFIX
from rootshell.core.demux import OutputDemultiplexer, marker_command
from rootshell.core.models import CommandState, FailureKind


def _marker(command_id, exit_code=0):
    return f"{MARKER_PREFIX} {command_id} {exit_code}\n"


def _setup(*texts):
    queue = CommandQueue()
    commands = [queue.enqueue(Command(t)) for t in texts]
    demux = OutputDemultiplexer(queue, dispatch=queue.dequeue_next)
    queue.dequeue_next()
    return queue, demux, commands


def test_marker_command_prints_id_and_status_on_its_own_line():
    assert marker_command(12) == f"printf '\\n{MARKER_PREFIX} %s %s\\n' 12 \"$?\""


def test_lines_go_to_current_command_then_marker_advances():
    queue, demux, (first, second) = _setup("echo a", "echo b")

    demux.feed("a\n")
    demux.feed(_marker(1))
    demux.feed("b\r\n")
    demux.feed(_marker(2, 3))

    assert first.output == ["a"]
    assert first.exit_code == 0
    assert second.output == ["b"]
    assert second.state == CommandState.FINISHED
    assert second.exit_code == 3
    assert queue.drained


def test_separator_blank_before_marker_is_dropped():
    _queue, demux, (command,) = _setup("printf 'a\\n\\n'")
    for raw in ["a\n", "\n", "\n", _marker(1)]:
        demux.feed(raw)
    assert command.output == ["a", ""]
    assert command.exit_code == 0


def test_blank_line_not_followed_by_marker_is_output():
    _queue, demux, (command,) = _setup("printf 'a\\n\\nb\\n'")
    for raw in ["a\n", "\n", "b\n"]:
        demux.feed(raw)
    assert command.output == ["a", "", "b"]


def test_marker_only_counts_as_a_whole_line():
    _queue, demux, (first, second) = _setup("set -x; true", "echo two")
    traced = f"+ printf '\\n{MARKER_PREFIX} %s %s\\n' 1 0"
    for raw in ["+ true\n", traced + "\n", "abc" + _marker(1), "\n", _marker(1)]:
        demux.feed(raw)
    assert first.output == ["+ true", traced, "abc" + _marker(1).rstrip("\n")]
    assert first.exit_code == 0
    assert second.output == []


def test_marker_for_another_id_is_plain_output():
    _queue, demux, (command,) = _setup("cat log")
    line = _marker(99).rstrip("\n")
    demux.feed(line + "\n")
    assert command.output == [line]
    assert not command.done


def test_lines_with_no_command_in_flight_are_dropped():
    queue = CommandQueue()
    demux = OutputDemultiplexer(queue, dispatch=queue.dequeue_next)
    demux.feed("su: banner\n")
    command = queue.enqueue(Command("echo x"))
    queue.dequeue_next()
    demux.feed("x\n")
    assert command.output == ["x"]


def test_abandoned_command_output_is_discarded():
    queue, demux, (stalled, following) = _setup("sleep 5; echo late", "echo next")
    demux.abandon(stalled.id)
    queue.fail_current(FailureKind.TIMEOUT)
    queue.dequeue_next()

    demux.feed("late\n")
    demux.feed(_marker(1))
    demux.feed("next\n")
    demux.feed(_marker(2))

    assert stalled.failure == FailureKind.TIMEOUT
    assert stalled.output == []
    assert following.output == ["next"]
    assert following.exit_code == 0
    assert demux.stale_ids == []


def test_each_line_is_attributed_once():
    seen = []
    queue = CommandQueue()
    for text in ("a", "b"):
        queue.enqueue(Command(text, on_update=lambda cid, line: seen.append((cid, line))))
    demux = OutputDemultiplexer(queue, dispatch=queue.dequeue_next)
    queue.dequeue_next()

    for raw in ["1\n", "2\n", _marker(1), "3\n", _marker(2)]:
        demux.feed(raw)

    assert seen == [(1, "1"), (1, "2"), (2, "3")]


def test_eof_after_denial_is_permission_denied():
    _queue, demux, (current, queued) = _setup("id", "ls /data")
    demux.feed("su: Permission denied\n")

    kind = demux.handle_eof()

    assert kind == FailureKind.PERMISSION_DENIED
    assert current.failure == FailureKind.PERMISSION_DENIED
    assert queued.failure == FailureKind.PERMISSION_DENIED


def test_denial_flag_resets_when_command_finishes():
    _queue, demux, (first, second) = _setup("ls /root", "echo b")
    demux.feed("ls: /root: Permission denied\n")
    demux.feed(_marker(1, 1))

    assert demux.handle_eof() == FailureKind.IO_FAILURE
    assert first.exit_code == 1
    assert second.failure == FailureKind.IO_FAILURE


def test_eof_on_closed_queue_is_ignored():
    queue, demux, (command,) = _setup("echo a")
    queue.close(FailureKind.IO_FAILURE)
    assert demux.handle_eof() is None
    assert command.failure == FailureKind.IO_FAILURE
