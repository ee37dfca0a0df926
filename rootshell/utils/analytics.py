"""
Minimal usage analytics for the rootshell MCP tools.
One JSON object per tool call, appended to a local JSONL file.
"""
import json
import logging
import os
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

# Storage location
ANALYTICS_DIR = Path(os.environ.get("ROOTSHELL_ANALYTICS_DIR") or Path.home() / ".rootshell")
ANALYTICS_FILE = ANALYTICS_DIR / "analytics.jsonl"

# Track last tool for retry detection
_last_tool = None


def _ensure_dir():
    """Create analytics directory if needed."""
    ANALYTICS_FILE.parent.mkdir(parents=True, exist_ok=True)


def log_event(tool: str, ok: bool, failure: str = None, batch_size: int = 1):
    """
    Log a tool usage event.

    Args:
        tool: Tool name (e.g., "run_command", "run_commands")
        ok: Whether the tool succeeded
        failure: Failure kind value (timeout, io_failure, ...) if any
        batch_size: Number of commands (for batch tools)
    """
    global _last_tool

    try:
        _ensure_dir()

        event = {
            "ts": datetime.now().isoformat(timespec="seconds"),
            "tool": tool,
            "ok": ok,
            "failure": failure,
            "retry": tool == _last_tool and not ok,
            "batch_size": batch_size,
        }

        with open(ANALYTICS_FILE, "a") as f:
            f.write(json.dumps(event) + "\n")

        _last_tool = tool
    except OSError as e:
        # Never fail the tool call due to analytics
        logger.debug("Could not record analytics event: %s", e)


def _read_events() -> list:
    events = []
    with open(ANALYTICS_FILE) as f:
        for line in f:
            if line.strip():
                events.append(json.loads(line))
    return events


def get_summary() -> dict:
    """
    Get usage summary.

    Returns dict with:
    - tool_counts: {tool_name: count}
    - failure_counts: {failure_kind: count}
    - success_rate, retry_rate, timeout_rate: percentages
    - insights: list of hints
    """
    if not ANALYTICS_FILE.exists():
        return {"error": "No analytics data yet"}

    try:
        events = _read_events()
    except (OSError, ValueError) as e:
        return {"error": str(e)}

    if not events:
        return {"error": "No events recorded"}

    total = len(events)
    tool_counts = {}
    failure_counts = {}
    successes = 0
    retries = 0

    for e in events:
        tool = e.get("tool", "unknown")
        tool_counts[tool] = tool_counts.get(tool, 0) + 1
        if e.get("ok"):
            successes += 1
        if e.get("retry"):
            retries += 1
        failure = e.get("failure")
        if failure:
            failure_counts[failure] = failure_counts.get(failure, 0) + 1

    return {
        "total_events": total,
        "tool_counts": tool_counts,
        "failure_counts": failure_counts,
        "success_rate": round(successes / total * 100, 1),
        "retry_rate": round(retries / total * 100, 1),
        "timeout_rate": round(failure_counts.get("timeout", 0) / total * 100, 1),
        "insights": _generate_insights(failure_counts, total, retries / total),
    }


def _generate_insights(failure_counts: dict, total: int, retry_rate: float) -> list:
    """Generate actionable insights from metrics."""
    insights = []

    if failure_counts.get("permission_denied"):
        insights.append("Root was denied at least once. Check the su manager's grant for this app.")

    if failure_counts.get("timeout", 0) / total > 0.1:
        insights.append("Many commands time out. Raise timeout_seconds or check for commands reading stdin.")

    if failure_counts.get("io_failure", 0) / total > 0.1:
        insights.append("Shells die often. su may be killing long-lived sessions.")

    if retry_rate > 0.15:
        insights.append(f"High retry rate ({retry_rate*100:.0f}%): callers re-run failed tools.")

    if not insights:
        insights.append("No obvious issues detected.")

    return insights


def clear_analytics():
    """Clear all analytics data."""
    if ANALYTICS_FILE.exists():
        ANALYTICS_FILE.unlink()
    return "Analytics cleared."
