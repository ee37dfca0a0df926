"""Tests for ShellManager, the caller-facing entry points."""
from rootshell.core.manager import ShellManager
from rootshell.core.models import FailureKind, ShellType

from conftest import FAKE_ROOT_ID, FAKE_USER_ID


def test_run_command_success(manager):
    result = manager.run_command("echo hello")
    assert result.succeeded
    assert result.message == "hello"
    assert result.exit_code == 0
    assert result.failure is None


def test_run_command_nonzero_exit(manager):
    result = manager.run_command("echo nope; (exit 2)", elevated=False)
    assert not result.succeeded
    assert result.exit_code == 2
    assert result.message == "nope"


def test_empty_command_does_not_start_a_shell(manager):
    result = manager.run_command("   ")
    assert not result.succeeded
    assert result.message == "Empty command."
    assert manager.list_sessions() == []


def test_timeout_becomes_failed_result(manager):
    result = manager.run_command("sleep 1", timeout=0.2)
    assert not result.succeeded
    assert result.failure == FailureKind.TIMEOUT
    assert manager.run_command("echo later", timeout=10).message == "later"


def test_spawn_failure_becomes_failed_result():
    with ShellManager(argv={ShellType.ROOT: ["/nonexistent/rootshell-su"]}) as m:
        result = m.run_command("id")
    assert not result.succeeded
    assert result.failure is None
    assert "Could not start" in result.message


def test_one_session_per_identity(manager):
    root = manager.open_session(elevated=True)
    assert manager.open_session(elevated=True) is root
    user = manager.open_session(elevated=False)
    assert user is not root
    assert {s["type"] for s in manager.list_sessions()} == {"root", "non_root"}


def test_dead_session_is_replaced_on_next_call():
    argv = {ShellType.ROOT: ["sh", "-c", "read line; exit 1"]}
    with ShellManager(argv=argv) as m:
        dead = m.open_session()
        result = m.run_command("echo a")
        assert result.failure == FailureKind.IO_FAILURE
        assert dead.closed
        assert m.open_session() is not dead
        assert dead._process.proc.returncode is not None
        assert not dead._reader.is_alive()


def test_close_session_and_stop_all(manager):
    manager.open_session(elevated=True)
    manager.open_session(elevated=False)
    assert manager.close_session(elevated=True)
    assert not manager.close_session(elevated=True)
    assert manager.stop_all() == 1
    assert manager.list_sessions() == []


def test_run_commands_stops_on_error(manager):
    results = manager.run_commands(["echo one", "(exit 1)", "echo three"], stop_on_error=True)
    assert [r.succeeded for r in results] == [True, False]


def test_run_commands_runs_everything_by_default(manager):
    results = manager.run_commands(["echo one", "(exit 1)", "echo three"])
    assert [r.message for r in results] == ["one", "", "three"]


def test_check_elevated_true_when_id_reports_root(manager):
    manager.run_command(FAKE_ROOT_ID)
    assert manager.check_elevated() is True


def test_check_elevated_false_without_uid_zero(manager):
    manager.run_command(FAKE_USER_ID)
    assert manager.check_elevated() is False


def test_check_elevated_false_when_root_shell_denied():
    argv = {ShellType.ROOT: ["sh", "-c", "read line; echo 'su: permission denied'; exit 1"]}
    with ShellManager(argv=argv) as m:
        assert m.check_elevated() is False


def test_check_elevated_is_cached(manager):
    manager.run_command(FAKE_ROOT_ID)
    assert manager.check_elevated() is True
    checked_at = manager.permission.last_checked_at
    manager.run_command(FAKE_USER_ID)
    assert manager.check_elevated() is True
    assert manager.permission.last_checked_at == checked_at
    assert manager.check_elevated(ttl=-1) is False


def test_check_elevated_reprobes_after_refusal(manager):
    manager.run_command(FAKE_USER_ID)
    assert manager.check_elevated() is False
    manager.run_command(FAKE_ROOT_ID)
    assert manager.check_elevated() is True
