"""
Utilities module for rootshell.
"""
from .analytics import log_event, get_summary, clear_analytics

__all__ = ["log_event", "get_summary", "clear_analytics"]
