"""Confluence tools (wiki group). Shares the Atlassian credentials with Jira."""
import logging
from typing import Optional

import httpx
from pydantic import Field, StrictInt, StrictStr

from ..config import Settings
from ..formatters import web_url
from ..registry import ToolDescriptor, ToolGroup
from ..rest import RestCall, RestClient, encode_path_segment
from ..schemas import ToolParameters

logger = logging.getLogger("devkit-mcp.tools.confluence")

GROUP = ToolGroup.CONFLUENCE

SEARCH_EXPAND = "space,version,metadata.labels,ancestors"
PAGE_EXPAND = "space,version,body.storage,ancestors,children.page,metadata.labels"


def is_configured(settings: Settings) -> bool:
    return bool(settings.atlassian_host and settings.atlassian_email and settings.atlassian_token)


def create_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> RestClient:
    return RestClient(
        "Confluence",
        f"{settings.atlassian_base_url}/wiki/rest/api",
        auth=httpx.BasicAuth(settings.atlassian_email, settings.atlassian_token),
        headers={"Content-Type": "application/json"},
        proxy=settings.proxy_url,
        timeout=settings.http_timeout,
        transport=transport,
    )


# ============================================================================
# Parameter Schemas
# ============================================================================

class SearchParams(ToolParameters):
    query: StrictStr = Field(description="The CQL search query")
    limit: StrictInt = Field(10, description="Maximum number of results to return")


class GetPageParams(ToolParameters):
    page_id: StrictStr = Field(description="The ID of the Confluence page to retrieve")


class CreatePageParams(ToolParameters):
    space_key: StrictStr = Field(description="The key of the space where the page should be created")
    title: StrictStr = Field(description="The title of the page")
    content: StrictStr = Field(description="The content of the page in Confluence storage format")
    parent_id: Optional[StrictStr] = Field(None, description="ID of the parent page, if creating a child page")


class UpdatePageParams(ToolParameters):
    page_id: StrictStr = Field(description="The ID of the page to update")
    title: StrictStr = Field(description="The new title of the page")
    content: StrictStr = Field(description="The new content of the page in Confluence storage format")
    version: StrictInt = Field(description="Current version number of the page")


# ============================================================================
# Handlers
# ============================================================================

def _storage_body(content: str) -> dict:
    return {"storage": {"value": content, "representation": "storage"}}


def _page_result(page: dict) -> dict:
    links = page.get("_links") or {}
    return {"page": page, "url": web_url(links.get("base"), links.get("webui"))}


async def create_page(client: RestClient, args: CreatePageParams) -> dict:
    payload: dict = {
        "type": "page",
        "title": args.title,
        "space": {"key": args.space_key},
        "body": _storage_body(args.content),
    }
    if args.parent_id:
        payload["ancestors"] = [{"id": args.parent_id}]

    page = await client.post("/content", json=payload)
    logger.info(f"Created Confluence page '{args.title}' in space {args.space_key} (ID: {page.get('id')})")
    return _page_result(page)


async def update_page(client: RestClient, args: UpdatePageParams) -> dict:
    """Replace a page's title and body.

    ``version`` is the page's current version; Confluence requires the next one.
    """
    page = await client.put(
        f"/content/{encode_path_segment(args.page_id)}",
        json={
            "type": "page",
            "title": args.title,
            "version": {"number": args.version + 1},
            "body": _storage_body(args.content),
        },
    )
    logger.info(f"Updated Confluence page {args.page_id} to version {args.version + 1}")
    return _page_result(page)


# ============================================================================
# Tool Definitions
# ============================================================================

TOOLS = [
    ToolDescriptor(
        name="confluence_search",
        description="Search Confluence content using CQL (Confluence Query Language)",
        parameters=SearchParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET",
            "/content/search",
            query=("query", "limit"),
            static_query={"expand": SEARCH_EXPAND},
            rename={"query": "cql"},
        ),
    ),
    ToolDescriptor(
        name="confluence_get_page",
        description="Get Confluence page content, including its space, version, body, ancestors and child pages",
        parameters=GetPageParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/content/{page_id}", static_query={"expand": PAGE_EXPAND}, wrap="page"),
    ),
    ToolDescriptor(
        name="confluence_create_page",
        description="Create a new Confluence page, optionally as a child of an existing page",
        parameters=CreatePageParams,
        group=GROUP,
        read_only=False,
        handler=create_page,
    ),
    ToolDescriptor(
        name="confluence_update_page",
        description="Update an existing Confluence page. Requires the page's current version number",
        parameters=UpdatePageParams,
        group=GROUP,
        read_only=False,
        handler=update_page,
    ),
]
