"""MCP protocol binding and the stdio transport."""
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool

from . import __version__
from .dispatcher import Dispatcher

logger = logging.getLogger("devkit-mcp.server")

SERVER_NAME = "devkit-mcp"


def build_mcp_server(dispatcher: Dispatcher) -> Server:
    """Create an MCP server whose listing and call handlers delegate to ``dispatcher``.

    Argument validation is left to the dispatcher so every transport reports
    violations identically.
    """
    app = Server(SERVER_NAME, version=__version__)

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        """List the tools exposed by this server."""
        return dispatcher.list_tools()

    @app.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Any) -> CallToolResult:
        """Handle MCP tool calls by delegating to the dispatcher."""
        text, is_error = await dispatcher.call_tool_text(name, arguments)
        return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)

    return app


async def run_stdio(dispatcher: Dispatcher) -> None:
    """Serve MCP over stdin/stdout until the client disconnects."""
    app = build_mcp_server(dispatcher)
    logger.info(f"{SERVER_NAME} v{__version__} running on stdio with {len(dispatcher.list_tools())} tools")
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())
