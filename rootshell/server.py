"""
rootshell - MCP Server
Entry point for the MCP server.
"""
from mcp.server.fastmcp import FastMCP

from .core.manager import ShellManager
from .tools import register_tools


def create_server(manager: ShellManager) -> FastMCP:
    """Build the MCP server around a shell manager."""
    mcp = FastMCP("RootShell")
    register_tools(mcp, manager)
    return mcp


def main():
    """Main entry point for script execution."""
    with ShellManager() as manager:
        create_server(manager).run()


if __name__ == "__main__":
    main()
