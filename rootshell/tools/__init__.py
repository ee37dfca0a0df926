"""
MCP tools for rootshell.
"""
from .handlers import register_tools

__all__ = ["register_tools"]
