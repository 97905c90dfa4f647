"""Local command-line script runner.

Scripts run through the system shell in their own session, so a timeout or a
cancelled invocation can kill the whole process group, not just the shell.
"""
import asyncio
import logging
import os
import re
import signal
from typing import Optional

from pydantic import Field, StrictStr, field_validator

from ..config import Settings
from ..errors import DangerousScriptError, InvalidTimeoutError, ScriptTimeoutError
from ..registry import ToolDescriptor, ToolGroup
from ..schemas import Number, ToolParameters

logger = logging.getLogger("devkit-mcp.tools.script")

GROUP = ToolGroup.SCRIPT

DEFAULT_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 300
READ_CHUNK_SIZE = 64 * 1024

DANGEROUS_PATTERNS = [
    re.compile(r"\brm\s+(-rf?|--recursive)\s+[/~]", re.IGNORECASE),
    re.compile(r"\bformat\s+([a-z]:)?/", re.IGNORECASE),
    re.compile(r"\bmkfs", re.IGNORECASE),
    re.compile(r"\bdd\s+if=", re.IGNORECASE),
    re.compile(r"\bwipe", re.IGNORECASE),
]


def find_dangerous_pattern(script: str) -> Optional[str]:
    """Return the first deny-list pattern the script matches, if any."""
    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(script):
            return pattern.pattern
    return None


class _CappedBuffer:
    """Accumulates a stream up to ``limit`` bytes and discards the rest."""

    def __init__(self, limit: int):
        self.limit = limit
        self.data = bytearray()
        self.truncated = False

    async def drain(self, stream: asyncio.StreamReader) -> None:
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                return
            room = self.limit - len(self.data)
            if len(chunk) > room:
                self.truncated = True
            if room > 0:
                self.data.extend(chunk[:room])

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        # already gone
        pass


class ScriptRunner:
    """Runs shell scripts with a timeout and a per-stream output cap."""

    def __init__(self, max_output_bytes: int):
        self.max_output_bytes = max_output_bytes

    async def run(self, script: str, timeout: float) -> dict:
        """Execute ``script`` and capture its output.

        A nonzero exit status is reported in the result, not raised.

        Raises:
            ScriptTimeoutError: if the script outlives ``timeout`` seconds
        """
        process = await asyncio.create_subprocess_shell(
            script,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        stdout = _CappedBuffer(self.max_output_bytes)
        stderr = _CappedBuffer(self.max_output_bytes)

        async def communicate() -> int:
            await asyncio.gather(stdout.drain(process.stdout), stderr.drain(process.stderr))
            return await process.wait()

        try:
            exit_code = await asyncio.wait_for(communicate(), timeout)
        except asyncio.TimeoutError:
            _kill_process_group(process)
            await process.wait()
            logger.warning(f"Script timed out after {timeout:g}s (pid {process.pid}), process group killed")
            raise ScriptTimeoutError(timeout, stdout.text(), stderr.text()) from None
        except asyncio.CancelledError:
            _kill_process_group(process)
            await process.wait()
            logger.info(f"Script cancelled (pid {process.pid}), process group killed")
            raise

        truncated = stdout.truncated or stderr.truncated
        if truncated:
            logger.warning(f"Script output exceeded {self.max_output_bytes} bytes and was truncated")
        return {
            "stdout": stdout.text(),
            "stderr": stderr.text(),
            "exitCode": exit_code,
            "truncated": truncated,
        }


def is_configured(settings: Settings) -> bool:
    return True


def create_client(settings: Settings) -> ScriptRunner:
    return ScriptRunner(settings.script_max_output_bytes)


# ============================================================================
# Parameter Schemas
# ============================================================================

class ExecuteScriptParams(ToolParameters):
    script: StrictStr = Field(description="The script to execute (shell command or multi-line script)")
    timeout_seconds: Number = Field(
        DEFAULT_TIMEOUT_SECONDS,
        description=f"Maximum execution time in seconds (default: {DEFAULT_TIMEOUT_SECONDS}, "
                    f"max: {MAX_TIMEOUT_SECONDS})",
    )

    @field_validator("script")
    @classmethod
    def script_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Script cannot be empty")
        return v


# ============================================================================
# Handlers
# ============================================================================

async def execute_command_line_script(runner: ScriptRunner, args: ExecuteScriptParams) -> dict:
    """Guard, then run, one script.

    Raises:
        InvalidTimeoutError: if the timeout is outside (0, 300] seconds
        DangerousScriptError: if the script matches the deny-list
    """
    timeout = args.timeout_seconds
    # also rejects NaN
    if not 0 < timeout <= MAX_TIMEOUT_SECONDS:
        raise InvalidTimeoutError(timeout, MAX_TIMEOUT_SECONDS)

    pattern = find_dangerous_pattern(args.script)
    if pattern is not None:
        logger.warning(f"Rejected script matching dangerous pattern {pattern!r}")
        raise DangerousScriptError(pattern)

    preview = args.script[:50] + ("..." if len(args.script) > 50 else "")
    logger.info(f"Executing script with {timeout:g}s timeout: {preview}")
    return await runner.run(args.script, timeout)


# ============================================================================
# Tool Definitions
# ============================================================================

TOOLS = [
    ToolDescriptor(
        # agent configurations depend on this exact (misspelled) name
        name="execute_comand_line_script",
        description="Execute a command line script on the host with safety restrictions: dangerous commands "
                    "are rejected, execution is bounded by a timeout, and stdout/stderr are captured "
                    "(up to 1 MiB each). A nonzero exit code is returned as data",
        parameters=ExecuteScriptParams,
        group=GROUP,
        read_only=False,
        handler=execute_command_line_script,
    ),
]
