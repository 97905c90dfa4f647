"""GitHub tools (source-hosting group).

Auth: bearer token. The API root defaults to ``https://api.github.com`` and
can point at a GitHub Enterprise instance via ``GITHUB_API_URL``.
"""
import base64
import logging
from typing import Literal, Optional
from urllib.parse import quote

import httpx
from pydantic import Field, StrictBool, StrictInt, StrictStr

from ..config import Settings
from ..errors import NotAFileError, NotFoundError, PartialSuccessError, ToolError
from ..formatters import decode_base64_content
from ..registry import ToolDescriptor, ToolGroup
from ..rest import RestCall, RestClient
from ..schemas import ToolParameters

logger = logging.getLogger("devkit-mcp.tools.github")

GROUP = ToolGroup.GITHUB

SortDirection = Literal["asc", "desc"]


def is_configured(settings: Settings) -> bool:
    return bool(settings.github_token)


def create_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> RestClient:
    return RestClient(
        "GitHub",
        settings.github_api_url,
        headers={
            "Authorization": f"Bearer {settings.github_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        },
        proxy=settings.proxy_url,
        timeout=settings.http_timeout,
        transport=transport,
    )


def _repo_path(owner: str, repo: str) -> str:
    return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"


def _contents_path(owner: str, repo: str, path: str) -> str:
    return f"{_repo_path(owner, repo)}/contents/{quote(path.lstrip('/'), safe='/')}"


# ============================================================================
# Parameter Schemas
# ============================================================================

class RepoParams(ToolParameters):
    owner: StrictStr = Field(description="Repository owner (user or organization)")
    repo: StrictStr = Field(description="Repository name")


class PageParams(ToolParameters):
    per_page: Optional[StrictInt] = Field(None, description="Number of results per page (max 100)")
    page: Optional[StrictInt] = Field(None, description="Page number for pagination")


class ListReposParams(PageParams):
    owner: StrictStr = Field(description="GitHub username or organization name")
    type: Optional[Literal["all", "owner", "public", "private", "member"]] = Field(
        None, description="Type of repositories to list"
    )
    sort: Optional[Literal["created", "updated", "pushed", "full_name"]] = Field(
        None, description="How to sort the results"
    )
    direction: Optional[SortDirection] = Field(None, description="Sort direction")


class ListPRsParams(RepoParams, PageParams):
    state: Optional[Literal["open", "closed", "all"]] = Field(None, description="PR state to filter by")
    sort: Optional[Literal["created", "updated", "popularity", "long-running"]] = Field(
        None, description="How to sort the results"
    )
    direction: Optional[SortDirection] = Field(None, description="Sort direction")


class PRParams(RepoParams):
    pr_number: StrictInt = Field(description="Pull request number")


class PRCommentParams(PRParams):
    body: StrictStr = Field(description="Comment content")


class FileContentParams(RepoParams):
    path: StrictStr = Field(description="Path to the file")
    ref: Optional[StrictStr] = Field(
        None, description="The name of the commit/branch/tag (defaults to the repository's default branch)"
    )


class CreateOrUpdateFileParams(RepoParams):
    path: StrictStr = Field(description="Path of the file in the repository")
    content: StrictStr = Field(description="New file content (plain text)")
    message: StrictStr = Field(description="Commit message")
    branch: Optional[StrictStr] = Field(
        None, description="Branch to commit to (defaults to the repository's default branch)"
    )


class CreatePRParams(RepoParams):
    title: StrictStr = Field(description="Pull request title")
    body: Optional[StrictStr] = Field(None, description="Pull request description")
    head: StrictStr = Field(description="The name of the branch where your changes are implemented")
    base: StrictStr = Field(description="The name of the branch you want the changes pulled into")
    draft: Optional[StrictBool] = Field(None, description="Whether to create a draft pull request")


class PRActionParams(PRParams):
    action: Literal["approve", "close"] = Field(description="Action to perform")
    comment: Optional[StrictStr] = Field(None, description="Comment to include with the action")


class ListIssuesParams(RepoParams, PageParams):
    state: Optional[Literal["open", "closed", "all"]] = Field(None, description="Issue state to filter by")
    labels: Optional[StrictStr] = Field(None, description="Comma-separated list of label names")
    sort: Optional[Literal["created", "updated", "comments"]] = Field(None, description="How to sort the results")
    direction: Optional[SortDirection] = Field(None, description="Sort direction")
    since: Optional[StrictStr] = Field(None, description="Only issues updated after this time (ISO 8601)")


class IssueParams(RepoParams):
    issue_number: StrictInt = Field(description="Issue number")


class IssueCommentParams(IssueParams):
    body: StrictStr = Field(description="Comment content")


class IssueActionParams(IssueParams):
    action: Literal["close", "reopen"] = Field(description="Action to perform")
    comment: Optional[StrictStr] = Field(None, description="Comment to include with the action")


# ============================================================================
# Handlers
# ============================================================================

async def get_default_branch(client: RestClient, owner: str, repo: str) -> str:
    repository = await client.get(_repo_path(owner, repo))
    return repository["default_branch"]


async def get_pr_details(client: RestClient, args: PRParams) -> dict:
    """Pull request plus its reviews and commits, fetched one after another."""
    base = f"{_repo_path(args.owner, args.repo)}/pulls/{args.pr_number}"
    pr = await client.get(base)
    reviews = await client.get(f"{base}/reviews")
    commits = await client.get(f"{base}/commits")
    return {"pullRequest": pr, "reviews": reviews, "commits": commits}


async def get_file_content(client: RestClient, args: FileContentParams) -> dict:
    """Fetch one file and decode it to text.

    Without ``ref`` the repository's default branch is looked up first.

    Raises:
        NotAFileError: if the path is a directory (or a symlink/submodule)
    """
    ref = args.ref or await get_default_branch(client, args.owner, args.repo)
    data = await client.get(_contents_path(args.owner, args.repo, args.path), params={"ref": ref})
    if isinstance(data, list) or data.get("type") != "file":
        raise NotAFileError(args.path)

    return {
        "content": decode_base64_content(data.get("content", "")),
        "encoding": "utf-8",
        "sha": data.get("sha"),
        "size": data.get("size"),
        "name": data.get("name"),
        "path": data.get("path"),
        "ref": ref,
        "url": data.get("html_url"),
    }


async def create_or_update_file(client: RestClient, args: CreateOrUpdateFileParams) -> dict:
    """Commit a file, creating it or updating it in place.

    The existing file is read first; its blob ``sha`` must accompany an update.
    """
    branch = args.branch or await get_default_branch(client, args.owner, args.repo)
    path = _contents_path(args.owner, args.repo, args.path)

    sha = None
    try:
        existing = await client.get(path, params={"ref": branch})
    except NotFoundError:
        logger.info(f"{args.path} not found on {branch}, creating it")
    else:
        if isinstance(existing, list):
            raise NotAFileError(args.path)
        sha = existing.get("sha")

    result = await client.put(
        path,
        json={
            "message": args.message,
            "content": base64.b64encode(args.content.encode("utf-8")).decode("ascii"),
            "branch": branch,
            "sha": sha,
        },
    )
    logger.info(f"{'Updated' if sha else 'Created'} {args.path} on {args.owner}/{args.repo}@{branch}")
    return {
        "action": "updated" if sha else "created",
        "branch": branch,
        "content": result.get("content"),
        "commit": result.get("commit"),
    }


async def create_pr(client: RestClient, args: CreatePRParams) -> dict:
    pr = await client.post(
        f"{_repo_path(args.owner, args.repo)}/pulls",
        json=args.remote_fields("title", "body", "head", "base", "draft"),
    )
    logger.info(f"Created pull request #{pr.get('number')} in {args.owner}/{args.repo}")
    return {"pullRequest": pr, "url": pr.get("html_url")}


async def _comment(client: RestClient, owner: str, repo: str, number: int, body: str) -> dict:
    return await client.post(f"{_repo_path(owner, repo)}/issues/{number}/comments", json={"body": body})


async def pr_action(client: RestClient, args: PRActionParams) -> dict:
    """Approve (a single review carrying the comment) or close then comment."""
    base = f"{_repo_path(args.owner, args.repo)}/pulls/{args.pr_number}"
    if args.action == "approve":
        review = await client.post(f"{base}/reviews", json={"event": "APPROVE", "body": args.comment})
        logger.info(f"Approved pull request #{args.pr_number} in {args.owner}/{args.repo}")
        return {"review": review}

    pr = await client.request("PATCH", base, json={"state": "closed"})
    logger.info(f"Closed pull request #{args.pr_number} in {args.owner}/{args.repo}")
    if not args.comment:
        return {"pullRequest": pr}
    try:
        comment = await _comment(client, args.owner, args.repo, args.pr_number, args.comment)
    except (ToolError, httpx.RequestError) as e:
        raise PartialSuccessError("close pull request", {"pullRequest": pr}, "add comment", e) from e
    return {"pullRequest": pr, "comment": comment}


async def get_issue(client: RestClient, args: IssueParams) -> dict:
    base = f"{_repo_path(args.owner, args.repo)}/issues/{args.issue_number}"
    issue = await client.get(base)
    comments = await client.get(f"{base}/comments")
    return {"issue": issue, "comments": comments}


async def issue_action(client: RestClient, args: IssueActionParams) -> dict:
    """Close or reopen an issue, then add the optional comment."""
    state = "closed" if args.action == "close" else "open"
    issue = await client.request(
        "PATCH", f"{_repo_path(args.owner, args.repo)}/issues/{args.issue_number}", json={"state": state}
    )
    logger.info(f"Set issue #{args.issue_number} in {args.owner}/{args.repo} to {state}")
    if not args.comment:
        return {"issue": issue}
    try:
        comment = await _comment(client, args.owner, args.repo, args.issue_number, args.comment)
    except (ToolError, httpx.RequestError) as e:
        raise PartialSuccessError(f"{args.action} issue", {"issue": issue}, "add comment", e) from e
    return {"issue": issue, "comment": comment}


# ============================================================================
# Tool Definitions
# ============================================================================

_PAGING = ("per_page", "page")

TOOLS = [
    ToolDescriptor(
        name="github_list_repos",
        description="List GitHub repositories for a user or organization",
        parameters=ListReposParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET", "/users/{owner}/repos", query=("type", "sort", "direction") + _PAGING, wrap="repositories"
        ),
    ),
    ToolDescriptor(
        name="github_get_repo",
        description="Get GitHub repository details",
        parameters=RepoParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/repos/{owner}/{repo}", wrap="repository"),
    ),
    ToolDescriptor(
        name="github_list_prs",
        description="List pull requests for a repository",
        parameters=ListPRsParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET", "/repos/{owner}/{repo}/pulls", query=("state", "sort", "direction") + _PAGING, wrap="pullRequests"
        ),
    ),
    ToolDescriptor(
        name="github_get_pr_details",
        description="Get pull request details together with its reviews and commits",
        parameters=PRParams,
        group=GROUP,
        read_only=True,
        handler=get_pr_details,
    ),
    ToolDescriptor(
        name="github_create_pr_comment",
        description="Create a comment on a pull request",
        parameters=PRCommentParams,
        group=GROUP,
        read_only=False,
        handler=RestCall("POST", "/repos/{owner}/{repo}/issues/{pr_number}/comments", body=("body",), wrap="comment"),
    ),
    ToolDescriptor(
        name="github_get_file_content",
        description="Get file content from a GitHub repository. Uses the default branch when no ref is given",
        parameters=FileContentParams,
        group=GROUP,
        read_only=True,
        handler=get_file_content,
    ),
    ToolDescriptor(
        name="github_create_or_update_file",
        description="Create a file, or update it if it already exists, with a single commit",
        parameters=CreateOrUpdateFileParams,
        group=GROUP,
        read_only=False,
        handler=create_or_update_file,
    ),
    ToolDescriptor(
        name="github_create_pr",
        description="Create a new pull request",
        parameters=CreatePRParams,
        group=GROUP,
        read_only=False,
        handler=create_pr,
    ),
    ToolDescriptor(
        name="github_pr_action",
        description="Approve or close a pull request, optionally with a comment",
        parameters=PRActionParams,
        group=GROUP,
        read_only=False,
        handler=pr_action,
    ),
    ToolDescriptor(
        name="github_list_issues",
        description="List GitHub issues for a repository",
        parameters=ListIssuesParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET",
            "/repos/{owner}/{repo}/issues",
            query=("state", "labels", "sort", "direction", "since") + _PAGING,
            wrap="issues",
        ),
    ),
    ToolDescriptor(
        name="github_get_issue",
        description="Get GitHub issue details including its comments",
        parameters=IssueParams,
        group=GROUP,
        read_only=True,
        handler=get_issue,
    ),
    ToolDescriptor(
        name="github_comment_issue",
        description="Comment on a GitHub issue",
        parameters=IssueCommentParams,
        group=GROUP,
        read_only=False,
        handler=RestCall(
            "POST", "/repos/{owner}/{repo}/issues/{issue_number}/comments", body=("body",), wrap="comment"
        ),
    ),
    ToolDescriptor(
        name="github_issue_action",
        description="Close or reopen a GitHub issue, optionally with a comment",
        parameters=IssueActionParams,
        group=GROUP,
        read_only=False,
        handler=issue_action,
    ),
]
