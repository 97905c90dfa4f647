"""Runtime configuration.

Settings are read from the environment (and an optional ``.env`` file) once at
startup and passed by reference into the registry; nothing downstream reads
``os.environ`` directly.
"""
import logging
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("devkit-mcp.config")

DEFAULT_GITLAB_API_URL = "https://gitlab.com/api/v4"


def normalize_gitlab_api_url(url: Optional[str]) -> str:
    """Normalize a GitLab host or API URL to its ``/api/v4`` root.

    Examples:
        None -> https://gitlab.com/api/v4
        https://gitlab.example.com/ -> https://gitlab.example.com/api/v4
        https://gitlab.example.com/api/v4 -> unchanged
    """
    if not url:
        return DEFAULT_GITLAB_API_URL
    normalized = url.rstrip("/")
    if not normalized.startswith(("http://", "https://")):
        normalized = f"https://{normalized}"
    if not normalized.endswith("/api/v4"):
        normalized = f"{normalized}/api/v4"
    return normalized


class Settings(BaseSettings):
    """Server configuration resolved from environment variables.

    Empty variables count as unset. Boolean flags accept the usual spellings
    (``true``/``1``/``yes``/``on``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    port: int = 8080
    enable_tools: str = ""
    read_only_mode: bool = Field(
        default=False, validation_alias=AliasChoices("READ_ONLY_MODE", "GITLAB_READ_ONLY_MODE")
    )
    proxy_url: Optional[str] = None
    http_timeout: float = 30.0
    log_level: str = "INFO"

    # Atlassian (Jira + Confluence share credentials)
    atlassian_host: Optional[str] = None
    atlassian_email: Optional[str] = None
    atlassian_token: Optional[str] = None

    # GitHub
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"

    # GitLab
    gitlab_host: Optional[str] = Field(default=None, validation_alias=AliasChoices("GITLAB_HOST", "GITLAB_API_URL"))
    gitlab_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("GITLAB_TOKEN", "GITLAB_PERSONAL_ACCESS_TOKEN")
    )

    # Script runner
    script_max_output_bytes: int = Field(default=1024 * 1024, gt=0)

    @property
    def enabled_groups(self) -> frozenset[str]:
        """Group names selected by ``ENABLE_TOOLS``; empty means every group."""
        return frozenset(g.strip().lower() for g in self.enable_tools.split(",") if g.strip())

    def is_group_enabled(self, group: str) -> bool:
        enabled = self.enabled_groups
        return not enabled or group in enabled

    @property
    def atlassian_base_url(self) -> Optional[str]:
        """Atlassian site URL with scheme and without trailing slash."""
        if not self.atlassian_host:
            return None
        host = self.atlassian_host.rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return host

    @property
    def gitlab_api_url(self) -> str:
        """GitLab REST API root, always ending in ``/api/v4``."""
        return normalize_gitlab_api_url(self.gitlab_host)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings for the running process."""
    settings = Settings()
    logger.info(
        f"Loaded settings (groups: {', '.join(sorted(settings.enabled_groups)) or 'all'}, "
        f"read-only: {settings.read_only_mode}, proxy: {'yes' if settings.proxy_url else 'no'})"
    )
    return settings
