"""Command-line entry point: ``devkit-mcp [--protocol stdio|sse] [--port N]``."""
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import get_settings
from .dispatcher import Dispatcher
from .tools import build_registry

logger = logging.getLogger("devkit-mcp")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="devkit-mcp",
        description="Expose Jira, Confluence, GitHub, GitLab and script tools over MCP",
    )
    parser.add_argument(
        "--protocol",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport to serve (default: stdio)",
    )
    parser.add_argument("--port", type=int, default=None, help="HTTP port for the sse transport (overrides PORT)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


async def _serve_stdio(dispatcher: Dispatcher) -> None:
    from .server import run_stdio

    try:
        await run_stdio(dispatcher)
    finally:
        await dispatcher.aclose()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Run the MCP server."""
    args = parse_args(argv)

    # Log to stderr: stdout carries the stdio protocol
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
        force=True,
    )
    settings = get_settings()
    logging.getLogger().setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    logger.info("========================")
    logger.info(f"DevKit MCP Server v{__version__}")
    logger.info(f"Protocol: {args.protocol}")
    logger.info("========================")

    registry = build_registry(settings)
    if len(registry) == 0:
        logger.warning("No tools registered; check ENABLE_TOOLS and service credentials")
    dispatcher = Dispatcher(registry)

    if args.protocol == "sse":
        from .http_app import run_http

        run_http(dispatcher, port=args.port or settings.port)
    else:
        asyncio.run(_serve_stdio(dispatcher))


if __name__ == "__main__":
    main()
