"""Jira tools (issue-tracking group).

Auth: HTTP basic auth with the Atlassian account email and API token.
Endpoints: ``/rest/api/2`` for issues, ``/rest/agile/1.0`` for boards and sprints.
"""
import logging
from typing import Literal, Optional

import httpx
from pydantic import Field, StrictInt, StrictStr

from ..config import Settings
from ..registry import ToolDescriptor, ToolGroup
from ..rest import RestCall, RestClient, encode_path_segment
from ..schemas import ExtensionFields, ToolParameters

logger = logging.getLogger("devkit-mcp.tools.jira")

GROUP = ToolGroup.JIRA

DEFAULT_MAX_RESULTS = 50
ISSUE_FIELDS = "summary,status,assignee,description,subtasks"
SEARCH_FIELDS = ["summary", "status", "assignee", "priority"]


def is_configured(settings: Settings) -> bool:
    return bool(settings.atlassian_host and settings.atlassian_email and settings.atlassian_token)


def create_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> RestClient:
    return RestClient(
        "Jira",
        settings.atlassian_base_url,
        auth=httpx.BasicAuth(settings.atlassian_email, settings.atlassian_token),
        headers={"Content-Type": "application/json"},
        proxy=settings.proxy_url,
        timeout=settings.http_timeout,
        transport=transport,
    )


# ============================================================================
# Parameter Schemas
# ============================================================================

class IssueKeyParams(ToolParameters):
    issue_key: StrictStr = Field(description="The Jira issue key (e.g., PROJ-123)")


class SearchIssueParams(ToolParameters):
    jql: StrictStr = Field(description='JQL search query (e.g., "project = PROJ AND status = Open")')
    max_results: StrictInt = Field(
        DEFAULT_MAX_RESULTS, description=f"Maximum number of results to return (default: {DEFAULT_MAX_RESULTS})"
    )


class ListSprintsParams(ToolParameters):
    board_id: StrictInt = Field(description="The Jira board ID")
    state: Optional[Literal["active", "future", "closed"]] = Field(
        None, description="Filter by sprint state (active, future, closed)"
    )


class CreateIssueParams(ToolParameters):
    project_key: StrictStr = Field(description="The project key (e.g., PROJ)")
    issue_type: StrictStr = Field(description="The issue type (e.g., Bug, Task, Story)")
    summary: StrictStr = Field(description="Issue summary/title")
    description: Optional[StrictStr] = Field(None, description="Detailed description of the issue")
    assignee: Optional[StrictStr] = Field(None, description="Username of the assignee")
    priority: Optional[StrictStr] = Field(None, description="Priority level")
    labels: Optional[list[StrictStr]] = Field(None, description="Labels to apply to the issue")
    custom_fields: Optional[ExtensionFields] = Field(
        None, description="Custom field values as key-value pairs (e.g., {\"customfield_10010\": 5})"
    )


class UpdateIssueParams(ToolParameters):
    issue_key: StrictStr = Field(description="The Jira issue key (e.g., PROJ-123)")
    summary: Optional[StrictStr] = Field(None, description="New issue summary/title")
    description: Optional[StrictStr] = Field(None, description="New detailed description")
    assignee: Optional[StrictStr] = Field(
        None, description="Username of the new assignee (empty string unassigns the issue)"
    )
    priority: Optional[StrictStr] = Field(None, description="New priority level")
    labels: Optional[list[StrictStr]] = Field(None, description="New labels (replaces existing labels)")
    custom_fields: Optional[ExtensionFields] = Field(None, description="Custom field values to update")


class ListStatusesParams(ToolParameters):
    project_key: StrictStr = Field(description="The project key (e.g., PROJ)")


class TransitionIssueParams(ToolParameters):
    issue_key: StrictStr = Field(description="The Jira issue key (e.g., PROJ-123)")
    transition_id: StrictStr = Field(description="ID of the transition to perform (from jira_get_issue)")
    comment: Optional[StrictStr] = Field(None, description="Comment to add during the transition")
    resolution: Optional[StrictStr] = Field(
        None, description="Resolution to set if transitioning to Resolved/Closed"
    )


# ============================================================================
# Handlers
# ============================================================================

async def get_issue(client: RestClient, args: IssueKeyParams) -> dict:
    """Fetch one issue with its available workflow transitions."""
    issue = await client.get(
        f"/rest/api/2/issue/{encode_path_segment(args.issue_key)}",
        params={"fields": ISSUE_FIELDS, "expand": "transitions"},
    )
    logger.info(f"Successfully retrieved issue {args.issue_key}")
    return {"issue": issue}


async def search_issues(client: RestClient, args: SearchIssueParams) -> dict:
    """Run a JQL search. The query is forwarded verbatim; Jira validates it."""
    result = await client.post(
        "/rest/api/2/search",
        json={"jql": args.jql, "maxResults": args.max_results, "fields": SEARCH_FIELDS},
    )
    issues = result.get("issues", [])
    logger.info(f"JQL search returned {len(issues)} issues")
    return {"issues": issues, "total": result.get("total", len(issues))}


async def list_sprints(client: RestClient, args: ListSprintsParams) -> dict:
    result = await client.get(f"/rest/agile/1.0/board/{args.board_id}/sprint", params={"state": args.state})
    return {"sprints": result.get("values", [])}


def _apply_common_fields(fields: dict, args) -> None:
    if args.description:
        fields["description"] = args.description
    if args.priority:
        fields["priority"] = {"name": args.priority}
    if args.labels is not None:
        fields["labels"] = list(args.labels)
    if args.custom_fields:
        fields.update(args.custom_fields)


async def create_issue(client: RestClient, args: CreateIssueParams) -> dict:
    """Create an issue; the browse URL is derived from the key Jira returns."""
    fields: dict = {
        "project": {"key": args.project_key},
        "issuetype": {"name": args.issue_type},
        "summary": args.summary,
    }
    if args.assignee:
        fields["assignee"] = {"name": args.assignee}
    _apply_common_fields(fields, args)

    issue = await client.post("/rest/api/2/issue", json={"fields": fields})
    logger.info(f"Successfully created issue {issue['key']} (ID: {issue['id']})")
    return {
        "key": issue["key"],
        "id": issue["id"],
        "url": f"{client.base_url}/browse/{issue['key']}",
    }


async def update_issue(client: RestClient, args: UpdateIssueParams) -> dict:
    """Partially update an issue; only supplied fields change."""
    fields: dict = {}
    if args.summary:
        fields["summary"] = args.summary
    if "assignee" in args.model_fields_set:
        fields["assignee"] = {"name": args.assignee} if args.assignee else None
    _apply_common_fields(fields, args)

    # nested None (unassign) survives: the client only strips top-level keys
    await client.put(f"/rest/api/2/issue/{encode_path_segment(args.issue_key)}", json={"fields": fields})
    logger.info(f"Successfully updated issue {args.issue_key}")
    return {"success": True, "issueKey": args.issue_key}


async def transition_issue(client: RestClient, args: TransitionIssueParams) -> dict:
    """Move an issue through its workflow, optionally commenting and resolving in one request."""
    payload: dict = {"transition": {"id": args.transition_id}}
    if args.comment:
        payload["update"] = {"comment": [{"add": {"body": args.comment}}]}
    if args.resolution:
        payload["fields"] = {"resolution": {"name": args.resolution}}

    await client.post(f"/rest/api/2/issue/{encode_path_segment(args.issue_key)}/transitions", json=payload)
    logger.info(f"Successfully transitioned issue {args.issue_key} via transition {args.transition_id}")
    return {"success": True, "issueKey": args.issue_key, "transitionId": args.transition_id}


# ============================================================================
# Tool Definitions
# ============================================================================

TOOLS = [
    ToolDescriptor(
        name="jira_get_issue",
        description="Retrieve detailed information about a specific Jira issue including its status, "
                    "assignee, description, subtasks, and available transitions",
        parameters=IssueKeyParams,
        group=GROUP,
        read_only=True,
        handler=get_issue,
    ),
    ToolDescriptor(
        name="jira_search_issue",
        description="Search for Jira issues using JQL (Jira Query Language). Returns key details like "
                    "summary, status, assignee, and priority for matching issues",
        parameters=SearchIssueParams,
        group=GROUP,
        read_only=True,
        handler=search_issues,
    ),
    ToolDescriptor(
        name="jira_list_sprints",
        description="List sprints for a specific Jira board, including sprint IDs, names, states, and dates",
        parameters=ListSprintsParams,
        group=GROUP,
        read_only=True,
        handler=list_sprints,
    ),
    ToolDescriptor(
        name="jira_create_issue",
        description="Create a new Jira issue with specified details. Returns the created issue's key, ID, and URL",
        parameters=CreateIssueParams,
        group=GROUP,
        read_only=False,
        handler=create_issue,
    ),
    ToolDescriptor(
        name="jira_update_issue",
        description="Modify an existing Jira issue's details. Supports partial updates - "
                    "only specified fields will be changed",
        parameters=UpdateIssueParams,
        group=GROUP,
        read_only=False,
        handler=update_issue,
    ),
    ToolDescriptor(
        name="jira_list_statuses",
        description="Retrieve all available issue status IDs and their names for a specific Jira project",
        parameters=ListStatusesParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/rest/api/2/project/{project_key}/statuses", wrap="statuses"),
    ),
    ToolDescriptor(
        name="jira_transition_issue",
        description="Transition an issue through its workflow using a valid transition ID. "
                    "Get available transitions from jira_get_issue",
        parameters=TransitionIssueParams,
        group=GROUP,
        read_only=False,
        handler=transition_issue,
    ),
]
