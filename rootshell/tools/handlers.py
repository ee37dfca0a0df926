"""
MCP tool definitions for rootshell.

Every tool returns a plain-text block that starts with a STATUS line,
followed by details and, where relevant, Reason/Action hints.

Analytics: one event per call in ~/.rootshell/analytics.jsonl
"""
import shlex
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from ..core.exceptions import SpawnError
from ..core.manager import ShellManager
from ..core.models import FailureKind, RunResult
from ..utils import analytics

# Reason / Action lines per failure kind
_FAILURE_HINTS = {
    FailureKind.TIMEOUT: (
        "TIMEOUT",
        "Command did not finish in time. It keeps running in the shell; its late output is discarded.",
    ),
    FailureKind.PERMISSION_DENIED: (
        "PERMISSION_DENIED",
        "Root was refused. Grant root to this app in the su manager, then retry.",
    ),
    FailureKind.IO_FAILURE: (
        "IO_FAILURE",
        "The shell died. The next command starts a fresh shell.",
    ),
    FailureKind.INTERRUPTED: (
        "INTERRUPTED",
        "The wait was interrupted. Retry if needed.",
    ),
}


def _shell_label(elevated: bool) -> str:
    return "root" if elevated else "non_root"


def _parse_shell_type(shell_type: str) -> bool:
    """True for a root shell. Anything but non_root/user means root."""
    return (shell_type or "root").lower() not in ("non_root", "nonroot", "user")


def filter_lines(lines: List[str], max_lines: Optional[int] = None, output_mode: str = "tail",
                 grep: Optional[str] = None) -> tuple:
    """
    Filter and limit output lines.

    Returns (lines, note) where note describes what was dropped, or "".
    """
    original_count = len(lines)
    notes = []

    if grep:
        lines = [l for l in lines if grep in l]
        notes.append(f"GREP: '{grep}' ({len(lines)} matches)")

    if max_lines and len(lines) > max_lines:
        notes.append(f"TRUNCATED: {max_lines}/{original_count} lines ({output_mode})")
        if output_mode == "head":
            lines = lines[:max_lines]
        else:
            lines = lines[-max_lines:]

    return lines, '\n'.join(notes)


def format_result(result: RunResult, elevated: bool, max_lines: Optional[int] = None,
                  grep: Optional[str] = None) -> str:
    """Render a RunResult as a STATUS block."""
    parts = []
    if result.failure is not None:
        status, action = _FAILURE_HINTS[result.failure]
        parts.append(f"STATUS: {status}")
        parts.append(f"Shell: {_shell_label(elevated)}")
        parts.append(f"Reason: {result.message}")
        parts.append(f"Action: {action}")
        return '\n'.join(parts)

    if result.exit_code is None:
        parts.append("STATUS: ERROR")
        parts.append(f"Shell: {_shell_label(elevated)}")
        parts.append(f"Reason: {result.message}")
        return '\n'.join(parts)

    parts.append(f"STATUS: {'SUCCESS' if result.succeeded else 'COMMAND_FAILED'}")
    parts.append(f"Shell: {_shell_label(elevated)}")
    parts.append(f"EXIT_CODE: {result.exit_code}")

    lines, note = filter_lines(result.message.split('\n') if result.message else [],
                               max_lines, "tail", grep)
    if note:
        parts.append(note)
    parts.append("OUTPUT:")
    parts.append('\n'.join(lines) if lines else "(no output)")
    return '\n'.join(parts)


def format_batch(commands: List[str], results: List[RunResult], max_lines: Optional[int] = None,
                 grep: Optional[str] = None) -> str:
    """Render batch results, one section per command."""
    succeeded = sum(1 for r in results if r.succeeded)
    failed = len(results) - succeeded
    sections = []

    for i, (command, result) in enumerate(zip(commands, results)):
        status = "SUCCESS" if result.succeeded else "FAILED"
        if result.failure is not None:
            status = _FAILURE_HINTS[result.failure][0]
        lines = result.message.split('\n') if result.message else []
        if result.failure is None and result.exit_code is not None:
            lines, _ = filter_lines(lines, max_lines, "tail", grep)
        header = f"[cmd_{i}] {status}"
        if result.exit_code is not None:
            header += f" (exit {result.exit_code})"
        sections.append(f"{header}: {command[:100]}\n" + ('\n'.join(lines) if lines else "(no output)"))

    if len(results) < len(commands):
        sections.append(f"--- STOPPED: {len(commands) - len(results)} command(s) not run (stop_on_error=True) ---")

    header = f"BATCH RESULTS: {succeeded}/{len(commands)} succeeded, {failed} failed\n"
    header += "=" * 50
    return header + "\n\n" + "\n\n".join(sections)


def format_sessions(sessions: List[dict]) -> str:
    if not sessions:
        return "STATUS: NO_SHELLS\nNo active shells.\nAction: Use start_shell, or just run_command."

    lines = [f"STATUS: FOUND_{len(sessions)}_SHELL(S)", ""]
    for status in sessions:
        state = "ACTIVE" if status["alive"] else "DEAD"
        line = f"  {status['type']}: pid {status['pid']} - {state}, {status['queued']} queued"
        if status["current"]:
            line += f", running: {status['current']}"
        if status["discarding"]:
            line += f", discarding late output of {status['discarding']}"
        lines.append(line)
    return '\n'.join(lines)


def register_tools(mcp: FastMCP, manager: ShellManager):
    """Register all MCP tools with the server."""

    # ==================== TOOL 1: start_shell ====================
    @mcp.tool()
    def start_shell(shell_type: str = "root") -> str:
        """
        Start the shell for an identity (or confirm it is running).

        Args:
            shell_type: "root" for a su shell, "non_root" for a plain sh

        Shells also start on demand, so this is only needed to fail early.
        """
        elevated = _parse_shell_type(shell_type)
        try:
            session = manager.open_session(elevated)
        except SpawnError as e:
            analytics.log_event("start_shell", ok=False, failure="spawn")
            return f"STATUS: ERROR\nShell: {_shell_label(elevated)}\nReason: {e}\nAction: Check that su/sh is installed."
        analytics.log_event("start_shell", ok=True)
        return f"STATUS: CONNECTED\nShell: {_shell_label(elevated)}\nPID: {session.pid}\nReady for commands."

    # ==================== TOOL 2: stop_shell ====================
    @mcp.tool()
    def stop_shell(shell_type: str = None) -> str:
        """
        Stop shell(s). Pass shell_type to stop one, or omit to stop ALL shells.

        Queued and running commands on a stopped shell fail with IO_FAILURE.
        """
        if not shell_type or shell_type.lower() == "all":
            count = manager.stop_all()
            analytics.log_event("stop_shell", ok=True)
            return f"STATUS: STOPPED\nClosed {count} shell(s)."

        elevated = _parse_shell_type(shell_type)
        stopped = manager.close_session(elevated)
        analytics.log_event("stop_shell", ok=stopped)
        if not stopped:
            return f"STATUS: ERROR\nShell: {_shell_label(elevated)}\nReason: Shell not running."
        return f"STATUS: DISCONNECTED\nShell: {_shell_label(elevated)}"

    # ==================== TOOL 3: shell_status ====================
    @mcp.tool()
    def shell_status() -> str:
        """
        List running shells with pid, queue depth and the command in flight.
        """
        return format_sessions(manager.list_sessions())

    # ==================== TOOL 4: run_command ====================
    @mcp.tool()
    def run_command(
        command: str,
        shell_type: str = "root",
        timeout_seconds: int = 30,
        working_directory: str = None,
        max_lines: int = None,
        grep: str = None
    ) -> str:
        """
        Execute a command in the root (default) or non-root shell.

        Args:
            command: Shell command to execute
            shell_type: "root" or "non_root"
            timeout_seconds: Max wait time (default: 30s)
            working_directory: Optional directory to cd into first
            max_lines: Limit output to N lines (tail)
            grep: Filter output to lines containing this string

        Returns:
        - STATUS: SUCCESS/COMMAND_FAILED/TIMEOUT/PERMISSION_DENIED/IO_FAILURE/INTERRUPTED/ERROR
        - EXIT_CODE: The command's exit code
        - OUTPUT: Command output (possibly truncated/filtered)
        """
        elevated = _parse_shell_type(shell_type)
        if working_directory:
            command = f"cd {shlex.quote(working_directory)} && {command}"
        result = manager.run_command(command, elevated, timeout_seconds)

        analytics.log_event(
            "run_command",
            ok=result.succeeded,
            failure=result.failure.value if result.failure else None,
        )
        return format_result(result, elevated, max_lines, grep)

    # ==================== TOOL 5: run_commands ====================
    @mcp.tool()
    def run_commands(
        commands: list,
        shell_type: str = "root",
        stop_on_error: bool = False,
        timeout_seconds: int = 30,
        max_lines_per_command: int = 50,
        grep: str = None
    ) -> str:
        """
        Run multiple commands in ONE call, in order, on the same shell.

        Args:
            commands: Array of command strings: ["ls /data", "cat file.txt"]
            shell_type: "root" or "non_root"
            stop_on_error: Stop on first failure (default: False)
            timeout_seconds: Max wait per command (default: 30s)
            max_lines_per_command: Limit output per command (default: 50)
            grep: Filter all outputs to lines containing this string
        """
        elevated = _parse_shell_type(shell_type)
        commands = [str(c) for c in commands]
        results = manager.run_commands(commands, elevated, stop_on_error, timeout_seconds)

        failures = [r.failure.value for r in results if r.failure]
        analytics.log_event(
            "run_commands",
            ok=all(r.succeeded for r in results) and len(results) == len(commands),
            failure=failures[0] if failures else None,
            batch_size=len(commands),
        )
        return format_batch(commands, results, max_lines_per_command, grep)

    # ==================== TOOL 6: check_root ====================
    @mcp.tool()
    def check_root(max_age_seconds: float = None) -> str:
        """
        Check whether the root shell really runs as uid 0.

        The answer is cached; pass max_age_seconds to accept an older (or
        demand a fresher) answer than the default 10 minutes.
        """
        granted = manager.check_elevated(max_age_seconds)
        analytics.log_event("check_root", ok=granted)
        if granted:
            return "STATUS: ROOT_GRANTED\nShell: root\nuid=0 confirmed."
        return ("STATUS: ROOT_UNAVAILABLE\nShell: root\n"
                "Reason: su did not give a uid=0 shell.\n"
                "Action: Check the device is rooted and this app is granted root.")
