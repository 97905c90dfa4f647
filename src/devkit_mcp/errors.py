"""Error taxonomy for tool dispatch.

Every failure an invocation can run into is a ``ToolError`` subclass. The
dispatcher turns these into error envelopes, so the class name doubles as the
machine-readable error type the calling agent sees.

Hierarchy:
- UnknownToolError / ReadOnlyModeError / InvalidArgumentsError: rejected locally,
  never reach a collaborator
- RemoteError and its subtypes: a collaborator answered with a non-success status
- NotAFileError: a source-hosting path resolved to a directory
- DangerousScriptError / InvalidTimeoutError / ScriptTimeoutError: script runner guards
- PartialSuccessError: a composite action whose first step took effect
"""
from typing import Any, Optional


class ToolError(Exception):
    """Base class for failures reported back to the agent as error envelopes."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def error_type(self) -> str:
        return type(self).__name__


class DuplicateToolError(Exception):
    """Raised at registration time when a tool name is already taken."""

    def __init__(self, name: str):
        super().__init__(f"Tool already registered: {name}")
        self.name = name


class MalformedInvocationError(ValueError):
    """Raised when an invocation carries no argument payload at all."""


class UnknownToolError(ToolError):
    """Raised when an invocation names a tool that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}", details={"tool": name})
        self.name = name


class ReadOnlyModeError(ToolError):
    """Raised when a write tool is invoked while read-only mode is active."""

    def __init__(self, name: str):
        super().__init__(
            f"Tool '{name}' modifies remote state and is disabled in read-only mode",
            details={"tool": name},
        )
        self.name = name


class InvalidArgumentsError(ToolError):
    """Raised when arguments fail schema validation.

    Carries every violation as a ``(dotted_path, reason)`` pair.
    """

    def __init__(self, violations: list[tuple[str, str]]):
        self.violations = violations
        joined = "; ".join(f"{path}: {reason}" if path else reason for path, reason in violations)
        super().__init__(
            f"Invalid arguments: {joined}",
            details=[{"path": path, "reason": reason} for path, reason in violations],
        )


class RemoteError(ToolError):
    """A collaborator returned a non-success status."""

    def __init__(self, service: str, status_code: int, body: Any, message: Optional[str] = None):
        self.service = service
        self.status_code = status_code
        self.body = body
        super().__init__(
            message or f"{service} API error: {status_code}",
            details={"status": status_code, "body": body},
        )


class AuthError(RemoteError):
    """The collaborator rejected our credentials (401/403)."""


class RateLimitError(RemoteError):
    """The collaborator signalled rate limiting; callers should back off."""


class NotFoundError(RemoteError):
    """The requested remote resource does not exist (404)."""


class NotAFileError(ToolError):
    """A file lookup resolved to a directory instead of a file."""

    def __init__(self, path: str):
        super().__init__(f"Path points to a directory, not a file: {path}", details={"path": path})
        self.path = path


class DangerousScriptError(ToolError):
    """The script matched the destructive-command deny-list."""

    def __init__(self, pattern: str):
        super().__init__(
            "Script contains potentially dangerous commands that could cause data loss or system damage",
            details={"pattern": pattern},
        )
        self.pattern = pattern


class InvalidTimeoutError(ToolError):
    """The requested script timeout is outside (0, 300] seconds."""

    def __init__(self, timeout: float, maximum: float):
        super().__init__(
            f"Timeout must be greater than 0 and at most {maximum:g} seconds (got {timeout:g})",
            details={"timeoutSeconds": timeout},
        )


class ScriptTimeoutError(ToolError):
    """The script was killed after exceeding its timeout.

    Output captured before termination is kept in ``details``.
    """

    def __init__(self, timeout: float, stdout: str, stderr: str):
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Script execution timed out after {timeout:g} seconds",
            details={"stdout": stdout, "stderr": stderr, "exitCode": -1},
        )


class PartialSuccessError(ToolError):
    """A composite action's first step succeeded but a dependent step failed."""

    def __init__(self, completed_step: str, completed: Any, failed_step: str, failure: Exception):
        self.completed = completed
        self.failure = failure
        reason = failure.message if isinstance(failure, ToolError) else str(failure)
        failure_details = failure.details if isinstance(failure, ToolError) else None
        super().__init__(
            f"Partial success: {completed_step} succeeded, but {failed_step} failed: {reason}",
            details={
                "completed": {"step": completed_step, "result": completed},
                "failed": {"step": failed_step, "error": reason, "details": failure_details},
            },
        )
