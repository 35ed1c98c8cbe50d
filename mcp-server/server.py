"""
MCP Server for Security Group Reachability Graphs

This module implements the MCP (Model Context Protocol) server that gives LLM
clients tools to load AWS Security Groups and build the directed graph of which
sources may reach which security groups, and on which ports.

The server runs locally and communicates with LLM clients via stdio (standard input/output).
It provides read-only access to security groups loaded from AWS or from exported JSON files.

Architecture:
    LLM Client (stdio) <-> MCP Server <-> AWS API (HTTPS)

Environment:
    SG_GRAPH_CONFIG     JSON file with default exclude patterns and CIDR mapping
    SG_GRAPH_LOG_LEVEL  Log level for stderr diagnostics (default: WARNING)

Usage:
    Run this module directly to start the MCP server:
        python mcp-server/server.py

    Or configure it in your MCP client (Claude Desktop, Cursor, etc.)
"""

import asyncio
import logging
import os
import sys
import traceback
from pathlib import Path

# Add the mcp-server directory to Python path so imports work correctly
# when the package is not installed
_server_dir = Path(__file__).parent.absolute()
if str(_server_dir) not in sys.path:
    sys.path.insert(0, str(_server_dir))

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

try:
    from sg_graph.tools.graph_tools import get_graph_tools, handle_tool_call
except Exception as e:
    print(f"Error importing graph_tools: {e}", file=sys.stderr)
    print(f"Python path: {sys.path}", file=sys.stderr)
    print(f"Server directory: {_server_dir}", file=sys.stderr)
    traceback.print_exc(file=sys.stderr)
    sys.exit(1)


# Create MCP server instance with unique identifier
server = Server("sg-graph-mcp")


@server.list_tools()
async def handle_list_tools() -> list[Tool]:
    """
    Handle tool listing requests from MCP clients.

    Returns:
        list[Tool]: get_config, list_security_groups and build_graph
    """
    return get_graph_tools()


@server.call_tool()
async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
    """
    Handle tool execution requests from MCP clients.

    Tool errors are returned as JSON error responses, never raised to the client.

    Example:
        LLM calls: {"tool": "build_graph", "arguments": {"exclude": ["App"]}}
        This function routes to handle_build_graph() and returns the result.
    """
    return await handle_tool_call(name, arguments)


def configure_logging():
    # stdout carries the MCP protocol; diagnostics go to stderr only
    level = os.environ.get("SG_GRAPH_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level, logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


async def main():
    """
    Main entry point for the MCP server.

    Sets up stdio communication channels and runs the server until the client
    disconnects or the process is terminated.
    """
    configure_logging()
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception as e:
        print(f"Error running MCP server: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)
