"""DevKit MCP Server - developer tools over the Model Context Protocol.

This package exposes Jira, Confluence, GitHub and GitLab operations, plus a
local command-line script runner, as MCP tools for AI assistants.

Modules:
- config: Settings resolved from the environment
- schemas: Parameter validation and response envelopes
- registry: Tool descriptors and the name -> tool registry
- dispatcher: Validates, routes and normalizes tool invocations
- rest: Shared REST collaborator and declarative request handlers
- formatters: Response formatting utilities
- tools: Tool group providers (jira, confluence, github, gitlab, script)
- server: MCP binding and the stdio transport
- http_app: HTTP/SSE transport
"""

__version__ = "1.0.0"

from . import formatters
from . import tools
from .dispatcher import Dispatcher

__all__ = ["formatters", "tools", "Dispatcher", "__version__"]
