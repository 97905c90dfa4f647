"""Tool registry: name → descriptor mapping with group and read-only filtering.

Registration happens once at startup. Each tool group is supplied by a provider
module (see ``devkit_mcp.tools``) exposing:

- ``GROUP``: the ``ToolGroup`` it belongs to
- ``TOOLS``: the static list of ``ToolDescriptor`` entries
- ``is_configured(settings)``: whether prerequisite credentials are present
- ``create_client(settings)``: the collaborator handed to every handler of the group

After startup the registry is only read, so concurrent invocations need no locking.
"""
import enum
import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Awaitable, Callable, Iterable, Optional

from mcp.types import Tool

from .config import Settings
from .errors import DuplicateToolError, UnknownToolError
from .schemas import ToolParameters, input_schema

logger = logging.getLogger("devkit-mcp.registry")


class ToolGroup(str, enum.Enum):
    """Capability groups, enabled or disabled together."""

    JIRA = "jira"
    CONFLUENCE = "confluence"
    GITHUB = "github"
    GITLAB = "gitlab"
    SCRIPT = "script"


Handler = Callable[[Any, Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDescriptor:
    """A named tool: description, parameter schema, group, read-only flag and handler.

    ``handler`` is awaited as ``handler(client, validated_args)`` where
    ``client`` is the collaborator created for the tool's group.
    """

    name: str
    description: str
    parameters: type[ToolParameters]
    group: ToolGroup
    read_only: bool
    handler: Handler

    def input_schema(self) -> dict:
        return input_schema(self.parameters)

    def to_tool(self) -> Tool:
        """Public metadata advertised in listing responses."""
        return Tool(name=self.name, description=self.description, inputSchema=self.input_schema())


@dataclass(frozen=True)
class RegisteredTool:
    """A descriptor bound to its group's collaborator."""

    descriptor: ToolDescriptor
    client: Any = None


class ToolRegistry:
    """Ordered mapping of tool names to registered tools."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._tools: dict[str, RegisteredTool] = {}
        self._clients: list[Any] = []

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def read_only_mode(self) -> bool:
        return self.settings.read_only_mode

    def register(self, descriptor: ToolDescriptor, client: Any = None) -> None:
        """Register one tool.

        Raises:
            DuplicateToolError: if the name is already registered
        """
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        self._tools[descriptor.name] = RegisteredTool(descriptor=descriptor, client=client)

    def register_group(self, provider: ModuleType) -> bool:
        """Register every tool a provider module supplies for its group.

        The group is skipped, non-fatally, when the enabled-groups selector
        excludes it or when its prerequisite configuration is missing.

        Returns:
            True if the group's tools were registered
        """
        group: ToolGroup = provider.GROUP
        if not self.settings.is_group_enabled(group.value):
            logger.info(f"Tool group '{group.value}' not enabled, skipping")
            return False
        if not provider.is_configured(self.settings):
            logger.warning(f"Configuration for '{group.value}' missing, {group.value} tools will not be available")
            return False

        client = provider.create_client(self.settings)
        if client is not None:
            self._clients.append(client)
        for descriptor in provider.TOOLS:
            self.register(descriptor, client)
        logger.info(f"Registered {len(provider.TOOLS)} tools for group '{group.value}'")
        return True

    def register_groups(self, providers: Iterable[ModuleType]) -> None:
        selected = self.settings.enabled_groups
        known = {group.value for group in ToolGroup}
        for name in sorted(selected - known):
            logger.warning(f"Ignoring unknown tool group in ENABLE_TOOLS: {name}")
        for provider in providers:
            self.register_group(provider)

    def resolve(self, name: str) -> RegisteredTool:
        """Look up a tool by name.

        Write tools resolve even in read-only mode; the dispatcher applies that policy.

        Raises:
            UnknownToolError: if no tool has this name
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def list(
        self,
        read_only_only: Optional[bool] = None,
        groups: Optional[Iterable[ToolGroup]] = None,
    ) -> list[ToolDescriptor]:
        """Descriptors in registration order.

        Args:
            read_only_only: Exclude write tools; defaults to the read-only mode setting
            groups: Restrict to these groups
        """
        if read_only_only is None:
            read_only_only = self.read_only_mode
        wanted = set(groups) if groups is not None else None
        return [
            entry.descriptor
            for entry in self._tools.values()
            if (not read_only_only or entry.descriptor.read_only)
            and (wanted is None or entry.descriptor.group in wanted)
        ]

    async def aclose(self) -> None:
        """Close every collaborator that holds network resources."""
        for client in self._clients:
            close = getattr(client, "aclose", None)
            if close is not None:
                await close()
        self._clients.clear()
