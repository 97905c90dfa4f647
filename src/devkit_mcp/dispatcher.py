"""Dispatcher: executes one invocation end-to-end and answers listing requests.

Order of operations for an invocation (strictly sequential):
1. reject a missing argument payload (hard failure, the transport's contract)
2. resolve the tool by name
3. apply the read-only policy
4. validate arguments against the tool's parameter schema
5. await the handler exactly once
6. wrap the outcome in a ResponseEnvelope

Steps 2-6 never raise: every failure ends as an error envelope.
"""
import logging
import traceback
from typing import Optional

import httpx
from mcp.types import Tool

from . import formatters
from .errors import MalformedInvocationError, ReadOnlyModeError, ToolError
from .registry import ToolRegistry
from .schemas import ResponseEnvelope, validate_arguments

logger = logging.getLogger("devkit-mcp.dispatcher")


class Dispatcher:
    """Routes invocations to handlers and normalizes their results."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def list_tools(self) -> list[Tool]:
        """Advertised name/description/schema for every exposed tool.

        In read-only mode only non-mutating tools are listed.
        """
        return [descriptor.to_tool() for descriptor in self.registry.list()]

    async def call_tool(self, name: str, arguments: Optional[dict]) -> ResponseEnvelope:
        """Execute one invocation.

        Raises:
            MalformedInvocationError: if ``arguments`` is missing entirely
        """
        if arguments is None:
            raise MalformedInvocationError("Arguments are required")

        logger.info(f"Tool call: {name} with arguments: {arguments}")

        try:
            entry = self.registry.resolve(name)
            descriptor = entry.descriptor
            if self.registry.read_only_mode and not descriptor.read_only:
                raise ReadOnlyModeError(name)
            args = validate_arguments(descriptor.parameters, arguments)
        except ToolError as e:
            logger.warning(f"Rejected call to {name}: {e.message}")
            return ResponseEnvelope.failure(e.error_type, e.message, e.details)

        try:
            result = await descriptor.handler(entry.client, args)

        except ToolError as e:
            logger.error(f"{e.error_type} during {name} call: {e.message}")
            return ResponseEnvelope.failure(e.error_type, e.message, e.details)

        except httpx.RequestError as e:
            # Network/connection errors
            logger.error(f"Request error during {name} call:")
            logger.error(f"  Error type: {type(e).__name__}")
            logger.error(f"  Error message: {str(e)}")
            logger.error(f"  Traceback: {traceback.format_exc()}")
            return ResponseEnvelope.failure("ConnectionError", f"Connection failed - {str(e)}")

        except Exception as e:
            # Catch-all for unexpected errors
            logger.error(f"Unexpected error during {name} call:")
            logger.error(f"  Error type: {type(e).__name__}")
            logger.error(f"  Error message: {str(e)}")
            logger.error(f"  Arguments: {arguments}")
            logger.error(f"  Traceback:\n{traceback.format_exc()}")
            return ResponseEnvelope.failure("InternalError", f"{type(e).__name__}: {str(e)}")

        logger.info(f"Tool {name} completed successfully")
        return ResponseEnvelope.success(formatters.format_payload(result))

    async def call_tool_text(self, name: str, arguments: Optional[dict]) -> tuple[str, bool]:
        """Execute an invocation and render it as ``(text, is_error)`` for a transport."""
        envelope = await self.call_tool(name, arguments)
        if envelope.error is not None:
            return formatters.format_error(envelope.error), True
        return envelope.content, False

    async def aclose(self) -> None:
        await self.registry.aclose()
