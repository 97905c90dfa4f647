"""Tool group providers.

Each module supplies one ``ToolGroup``: its parameter schemas, handlers and
the static ``TOOLS`` table registered at startup.
"""
from ..config import Settings
from ..registry import ToolRegistry
from . import confluence, github, gitlab, jira, script

PROVIDERS = [jira, confluence, github, gitlab, script]


def build_registry(settings: Settings) -> ToolRegistry:
    """Create a registry holding every enabled, configured tool group."""
    registry = ToolRegistry(settings)
    registry.register_groups(PROVIDERS)
    return registry


__all__ = ["PROVIDERS", "build_registry", "confluence", "github", "gitlab", "jira", "script"]
