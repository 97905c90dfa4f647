"""HTTP transport: MCP over Server-Sent Events, plus health endpoints.

Endpoints:
- ``GET /sse``: opens an MCP session stream
- ``POST /messages/``: client-to-server messages for an open session
- ``GET /health`` and ``GET /``: liveness and server info
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response
from mcp.server.sse import SseServerTransport

from . import __version__
from .dispatcher import Dispatcher
from .server import SERVER_NAME, build_mcp_server

logger = logging.getLogger("devkit-mcp.http")

MESSAGES_PATH = "/messages/"


def create_app(dispatcher: Dispatcher) -> FastAPI:
    """Build the FastAPI application serving ``dispatcher`` over SSE."""
    mcp_server = build_mcp_server(dispatcher)
    sse = SseServerTransport(MESSAGES_PATH)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {SERVER_NAME} HTTP transport")
        yield
        logger.info("Shutting down, closing remote clients")
        await dispatcher.aclose()

    app = FastAPI(
        title="DevKit MCP",
        description="Jira, Confluence, GitHub, GitLab and script tools over the Model Context Protocol",
        version=__version__,
        lifespan=lifespan,
    )

    async def handle_sse(request: Request) -> Response:
        async with sse.connect_sse(request.scope, request.receive, request._send) as (read_stream, write_stream):
            await mcp_server.run(read_stream, write_stream, mcp_server.create_initialization_options())
        return Response()

    app.add_route("/sse", handle_sse, methods=["GET"])
    app.mount(MESSAGES_PATH, app=sse.handle_post_message)

    @app.get("/")
    def root():
        """Root endpoint with server info."""
        return {
            "name": SERVER_NAME,
            "version": __version__,
            "transport": "sse",
            "endpoints": {"sse": "/sse", "messages": MESSAGES_PATH, "health": "/health"},
            "readOnly": dispatcher.registry.read_only_mode,
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "tools": len(dispatcher.list_tools())}

    return app


def run_http(dispatcher: Dispatcher, port: int, host: str = "0.0.0.0") -> None:
    """Serve the HTTP transport with uvicorn until interrupted."""
    logger.info(f"Starting HTTP server on {host}:{port}")
    uvicorn.run(create_app(dispatcher), host=host, port=port, log_config=None)
