"""GitLab tools (source-hosting group).

Auth: ``PRIVATE-TOKEN`` header. The API root is derived from ``GITLAB_HOST``
and always ends in ``/api/v4``. Projects may be addressed by numeric ID or by
``namespace/project`` path; paths are URL-encoded into a single segment.
"""
import logging
import re
from typing import Literal, Optional, Union

import httpx
from pydantic import Field, StrictBool, StrictInt, StrictStr

from ..config import Settings
from ..errors import NotAFileError, NotFoundError
from ..formatters import decode_base64_content
from ..registry import ToolDescriptor, ToolGroup
from ..rest import RestCall, RestClient, encode_path_segment
from ..schemas import ToolParameters

logger = logging.getLogger("devkit-mcp.tools.gitlab")

GROUP = ToolGroup.GITLAB

ProjectId = Union[StrictStr, StrictInt]
SortOrder = Literal["asc", "desc"]
Visibility = Literal["private", "internal", "public"]

# Fields kept when a merge request is summarized (non-verbose responses)
MR_LIST_FIELDS = ("iid", "project_id", "title", "description", "state", "web_url")
MR_DETAIL_FIELDS = (
    "title",
    "description",
    "state",
    "web_url",
    "target_branch",
    "source_branch",
    "merge_status",
    "detailed_merge_status",
    "diff_refs",
)


def is_configured(settings: Settings) -> bool:
    return bool(settings.gitlab_token)


def create_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> RestClient:
    return RestClient(
        "GitLab",
        settings.gitlab_api_url,
        headers={"PRIVATE-TOKEN": settings.gitlab_token, "Content-Type": "application/json"},
        proxy=settings.proxy_url,
        timeout=settings.http_timeout,
        transport=transport,
    )


def _project(project_id) -> str:
    return f"/projects/{encode_path_segment(project_id)}"


def _pick(data: dict, fields: tuple) -> dict:
    return {name: data.get(name) for name in fields}


def _join_labels(labels: Optional[list[str]]) -> Optional[str]:
    return ",".join(labels) if labels is not None else None


# ============================================================================
# Parameter Schemas
# ============================================================================

class PageParams(ToolParameters):
    page: Optional[StrictInt] = Field(None, description="Page number for pagination")
    per_page: Optional[StrictInt] = Field(None, description="Number of results per page (max 100)")


class ProjectParams(ToolParameters):
    project_id: ProjectId = Field(description="The ID or path (namespace/project) of the project")


# -- Projects -----------------------------------------------------------------

class ListProjectsParams(PageParams):
    search: Optional[StrictStr] = Field(None, description="Search term for filtering projects")
    owned: Optional[StrictBool] = Field(
        None, description="List only projects explicitly owned by the authenticated user"
    )
    membership: Optional[StrictBool] = Field(
        None, description="List only projects which the authenticated user is a member of"
    )
    starred: Optional[StrictBool] = Field(None, description="List only projects starred by the authenticated user")
    simple: Optional[StrictBool] = Field(None, description="Return only limited fields for each project")
    visibility: Optional[Visibility] = Field(None, description="Filter by visibility")
    order_by: Optional[Literal["id", "name", "path", "created_at", "updated_at", "last_activity_at"]] = Field(
        None, description="Return projects ordered by this field"
    )
    sort: Optional[SortOrder] = Field(None, description="Sort direction")


class SearchRepositoriesParams(ToolParameters):
    search: StrictStr = Field(description="Search query")
    page: StrictInt = Field(1, description="Page number for pagination")
    per_page: StrictInt = Field(20, description="Number of results per page (max 100)")


class GetProjectParams(ProjectParams):
    license: Optional[StrictBool] = Field(None, description="Include project license data")
    statistics: Optional[StrictBool] = Field(None, description="Include project statistics")


class ListGroupProjectsParams(PageParams):
    group_id: ProjectId = Field(description="The ID or path of the group")
    include_subgroups: Optional[StrictBool] = Field(None, description="Include projects in subgroups")
    search: Optional[StrictStr] = Field(None, description="Search term for filtering projects")
    order_by: Optional[Literal["name", "path", "created_at", "updated_at", "last_activity_at"]] = Field(
        None, description="Return projects ordered by this field"
    )
    sort: Optional[SortOrder] = Field(None, description="Sort direction")
    archived: Optional[StrictBool] = Field(None, description="Limit by archived status")
    visibility: Optional[Visibility] = Field(None, description="Filter by visibility")
    with_issues_enabled: Optional[StrictBool] = Field(None, description="Limit to projects with issues enabled")
    with_merge_requests_enabled: Optional[StrictBool] = Field(
        None, description="Limit to projects with merge requests enabled"
    )
    min_access_level: Optional[StrictInt] = Field(None, description="Limit by current user minimal access level")
    starred: Optional[StrictBool] = Field(None, description="Limit to projects starred by the current user")


class CreateRepositoryParams(ToolParameters):
    name: StrictStr = Field(description="Repository name")
    description: Optional[StrictStr] = Field(None, description="Repository description")
    visibility: Optional[Visibility] = Field(None, description="Repository visibility level")
    initialize_with_readme: Optional[StrictBool] = Field(None, description="Initialize with README.md")


class ForkRepositoryParams(ProjectParams):
    namespace: Optional[StrictStr] = Field(None, description="Namespace to fork to (full path)")


class CreateBranchParams(ProjectParams):
    branch: StrictStr = Field(description="Name of the new branch")
    ref: Optional[StrictStr] = Field(
        None, description="Source branch or commit for the new branch (defaults to the default branch)"
    )


# -- Files and commits --------------------------------------------------------

class FileContentParams(ProjectParams):
    file_path: StrictStr = Field(description="Path to the file in the repository")
    ref: Optional[StrictStr] = Field(
        None, description="Branch, tag or commit to read (defaults to the default branch)"
    )


class CreateOrUpdateFileParams(ProjectParams):
    file_path: StrictStr = Field(description="Path where to create/update the file")
    content: StrictStr = Field(description="Content of the file")
    commit_message: StrictStr = Field(description="Commit message")
    branch: StrictStr = Field(description="Branch to create/update the file in")
    previous_path: Optional[StrictStr] = Field(None, description="Path of the file to move/rename")
    last_commit_id: Optional[StrictStr] = Field(None, description="Last known file commit ID")
    commit_id: Optional[StrictStr] = Field(None, description="Current file commit ID (for update operations)")


class FileEntry(ToolParameters):
    file_path: StrictStr = Field(description="Path where to create the file")
    content: StrictStr = Field(description="Content of the file")


class PushFilesParams(ProjectParams):
    branch: StrictStr = Field(description="Branch to push to")
    files: list[FileEntry] = Field(description="Files to create in a single commit")
    commit_message: StrictStr = Field(description="Commit message")


class ListPipelinesParams(ProjectParams, PageParams):
    scope: Optional[Literal["running", "pending", "finished", "branches", "tags"]] = Field(
        None, description="The scope of pipelines"
    )
    status: Optional[
        Literal[
            "created",
            "waiting_for_resource",
            "preparing",
            "pending",
            "running",
            "success",
            "failed",
            "canceled",
            "skipped",
            "manual",
            "scheduled",
        ]
    ] = Field(None, description="The status of pipelines")
    ref: Optional[StrictStr] = Field(None, description="The ref (branch or tag) to filter by")


class ListCommitsParams(ProjectParams, PageParams):
    ref_name: Optional[StrictStr] = Field(None, description="The branch or tag name to filter by")
    since: Optional[StrictStr] = Field(None, description="Only commits after this date (ISO 8601)")
    until: Optional[StrictStr] = Field(None, description="Only commits before this date (ISO 8601)")
    path: Optional[StrictStr] = Field(None, description="The file path to filter by")


class CommitParams(ProjectParams):
    sha: StrictStr = Field(description="The commit hash")


# -- Users and groups ---------------------------------------------------------

class ListUserEventsParams(PageParams):
    user_id: Optional[StrictInt] = Field(None, description="The ID of the user (defaults to current user)")
    action: Optional[StrictStr] = Field(
        None, description='The action to filter by (e.g., "created", "updated", "closed")'
    )
    target_type: Optional[StrictStr] = Field(
        None, description='The target type to filter by (e.g., "issue", "milestone", "merge_request")'
    )
    before: Optional[StrictStr] = Field(None, description="Events created before this date (ISO 8601)")
    after: Optional[StrictStr] = Field(None, description="Events created after this date (ISO 8601)")


class ListGroupUsersParams(PageParams):
    group_id: ProjectId = Field(description="The ID or path of the group")
    query: Optional[StrictStr] = Field(None, description="Search query to filter users")


# -- Merge requests -----------------------------------------------------------

class ListMRsParams(ProjectParams, PageParams):
    state: Optional[Literal["opened", "closed", "locked", "merged", "all"]] = Field(
        None, description="MR state to filter by"
    )
    order_by: Optional[Literal["created_at", "updated_at", "title", "priority"]] = Field(
        None, description="How to order the results"
    )
    sort: Optional[SortOrder] = Field(None, description="Sort direction")


class VerboseProjectParams(ProjectParams):
    verbose: StrictBool = Field(False, description="Return the full objects instead of a summary")


class MRParams(ProjectParams):
    merge_request_iid: StrictInt = Field(description="The internal ID of the merge request")


class VerboseMRParams(MRParams):
    verbose: StrictBool = Field(False, description="Return the full objects instead of a summary")


class MRDiffsParams(MRParams):
    view: Optional[Literal["inline", "parallel"]] = Field(None, description="Diff view type")


class CreateMRParams(ProjectParams):
    source_branch: StrictStr = Field(description="The source branch name")
    target_branch: StrictStr = Field(description="The target branch name")
    title: StrictStr = Field(description="The title of the merge request")
    description: Optional[StrictStr] = Field(None, description="The description of the merge request")
    assignee_id: Optional[StrictInt] = Field(None, description="The ID of the user to assign the MR to")
    target_project_id: Optional[StrictInt] = Field(
        None, description="The ID of the target project (if different from source)"
    )
    labels: Optional[StrictStr] = Field(None, description="Comma-separated list of labels to apply")
    remove_source_branch: Optional[StrictBool] = Field(
        None, description="Whether to remove the source branch after merge"
    )
    allow_collaboration: Optional[StrictBool] = Field(
        None, description="Allow commits from members who can merge to the target branch"
    )
    draft: Optional[StrictBool] = Field(None, description="Create as a draft merge request")


class UpdateMRParams(MRParams):
    title: Optional[StrictStr] = Field(None, description="The title of the merge request")
    description: Optional[StrictStr] = Field(None, description="The description of the merge request")
    target_branch: Optional[StrictStr] = Field(None, description="The target branch")
    assignee_ids: Optional[list[StrictInt]] = Field(None, description="The IDs of the users to assign the MR to")
    labels: Optional[list[StrictStr]] = Field(None, description="Labels for the MR")
    state_event: Optional[Literal["close", "reopen"]] = Field(None, description="New state (close/reopen)")
    remove_source_branch: Optional[StrictBool] = Field(None, description="Remove the source branch after merge")
    squash: Optional[StrictBool] = Field(None, description="Squash commits into a single commit when merging")
    draft: Optional[StrictBool] = Field(None, description="Work in progress merge request")


class MRNoteParams(MRParams):
    body: StrictStr = Field(description="The content of the note")


class CreateNoteParams(ProjectParams):
    noteable_type: Literal["issue", "merge_request"] = Field(
        description="Type of noteable (issue or merge_request)"
    )
    noteable_iid: StrictInt = Field(description="IID of the issue or merge request")
    body: StrictStr = Field(description="Note content")


class UpdateMRNoteParams(MRParams):
    discussion_id: StrictStr = Field(description="The ID of a thread")
    note_id: StrictInt = Field(description="The ID of a thread note")
    body: StrictStr = Field(description="The content of the note or reply")
    resolved: Optional[StrictBool] = Field(None, description="Resolve or unresolve the note")


class DiffCommentParams(MRParams):
    comment: StrictStr = Field(description="The comment text")
    base_sha: StrictStr = Field(description="Base commit SHA of the merge request (diff_refs.base_sha)")
    start_sha: StrictStr = Field(description="Start commit SHA of the merge request (diff_refs.start_sha)")
    head_sha: StrictStr = Field(description="Head commit SHA of the merge request (diff_refs.head_sha)")
    file_path: StrictStr = Field(description="Path of the file being commented on")
    line_number: StrictInt = Field(description="Line number in the new version of the file")


# -- Issues -------------------------------------------------------------------

class ListIssuesParams(ProjectParams, PageParams):
    state: Optional[Literal["opened", "closed", "all"]] = Field(None, description="Return issues in this state")
    labels: Optional[list[StrictStr]] = Field(None, description="Return issues with all of these labels")
    assignee_id: Optional[StrictInt] = Field(None, description="Return issues assigned to this user ID")
    author_id: Optional[StrictInt] = Field(None, description="Return issues created by this user ID")
    milestone: Optional[StrictStr] = Field(None, description="Milestone title")
    scope: Optional[Literal["created_by_me", "assigned_to_me", "all"]] = Field(
        None, description="Return issues from a specific scope"
    )
    search: Optional[StrictStr] = Field(None, description="Search issues against their title and description")
    order_by: Optional[Literal["created_at", "updated_at", "priority", "due_date"]] = Field(
        None, description="Return issues ordered by this field"
    )
    sort: Optional[SortOrder] = Field(None, description="Sort direction")


class IssueParams(ProjectParams):
    issue_iid: StrictInt = Field(description="The internal ID of the project issue")


class CreateIssueParams(ProjectParams):
    title: StrictStr = Field(description="Issue title")
    description: Optional[StrictStr] = Field(None, description="Issue description")
    assignee_ids: Optional[list[StrictInt]] = Field(None, description="Array of user IDs to assign")
    labels: Optional[list[StrictStr]] = Field(None, description="Array of label names")
    milestone_id: Optional[StrictInt] = Field(None, description="Milestone ID to assign")


class UpdateIssueParams(IssueParams):
    title: Optional[StrictStr] = Field(None, description="The title of the issue")
    description: Optional[StrictStr] = Field(None, description="The description of the issue")
    assignee_ids: Optional[list[StrictInt]] = Field(None, description="Array of user IDs to assign")
    labels: Optional[list[StrictStr]] = Field(None, description="Array of label names")
    milestone_id: Optional[StrictInt] = Field(None, description="Milestone ID to assign")
    state_event: Optional[Literal["close", "reopen"]] = Field(None, description="Update issue state")
    confidential: Optional[StrictBool] = Field(None, description="Set the issue to be confidential")
    due_date: Optional[StrictStr] = Field(None, description="Due date in YYYY-MM-DD format")


class IssueLinkParams(IssueParams):
    issue_link_id: StrictInt = Field(description="ID of an issue relationship")


class CreateIssueLinkParams(IssueParams):
    target_project_id: ProjectId = Field(description="The ID or path of a target project")
    target_issue_iid: StrictInt = Field(description="The internal ID of a target project's issue")
    link_type: Literal["relates_to", "blocks", "is_blocked_by"] = Field(
        "relates_to", description="The type of the relation"
    )


# -- Namespaces ---------------------------------------------------------------

class ListNamespacesParams(PageParams):
    search: Optional[StrictStr] = Field(None, description="Search term for namespaces")
    owned: Optional[StrictBool] = Field(None, description="Filter for namespaces owned by current user")


class NamespaceParams(ToolParameters):
    namespace_id: ProjectId = Field(description="Namespace ID or full path")


class VerifyNamespaceParams(ToolParameters):
    path: StrictStr = Field(description="Namespace path to verify")
    parent_id: Optional[StrictInt] = Field(None, description="ID of the parent namespace")


# -- Labels -------------------------------------------------------------------

class ListLabelsParams(ProjectParams):
    with_counts: Optional[StrictBool] = Field(None, description="Include issue and merge request counts")
    include_ancestor_groups: Optional[StrictBool] = Field(None, description="Include ancestor groups")
    search: Optional[StrictStr] = Field(None, description="Keyword to filter labels")


class LabelParams(ProjectParams):
    label_id: ProjectId = Field(description="The ID or title of a project's label")


class GetLabelParams(LabelParams):
    include_ancestor_groups: Optional[StrictBool] = Field(None, description="Include ancestor groups")


class CreateLabelParams(ProjectParams):
    name: StrictStr = Field(description="The name of the label")
    color: StrictStr = Field(description="The color of the label as a hex code (e.g. #FFAABB) or CSS color name")
    description: Optional[StrictStr] = Field(None, description="The description of the label")
    priority: Optional[StrictInt] = Field(None, description="The priority of the label")


class UpdateLabelParams(LabelParams):
    new_name: Optional[StrictStr] = Field(None, description="The new name of the label")
    color: Optional[StrictStr] = Field(None, description="The color of the label")
    description: Optional[StrictStr] = Field(None, description="The new description of the label")
    priority: Optional[StrictInt] = Field(None, description="The new priority of the label")


# ============================================================================
# Project Handlers
# ============================================================================

async def get_default_branch(client: RestClient, project_id) -> str:
    project = await client.get(_project(project_id))
    return project.get("default_branch") or "main"


async def search_repositories(client: RestClient, args: SearchRepositoriesParams) -> dict:
    projects = await client.get(
        "/projects",
        params={
            "search": args.search,
            "page": args.page,
            "per_page": args.per_page,
            "order_by": "id",
            "sort": "desc",
        },
    )
    return {"current_page": args.page, "count": len(projects), "items": projects}


async def create_repository(client: RestClient, args: CreateRepositoryParams) -> dict:
    payload = args.remote_fields()
    payload["path"] = re.sub(r"\s+", "-", args.name.lower())
    payload["default_branch"] = "main"
    project = await client.post("/projects", json=payload)
    logger.info(f"Created GitLab project {project.get('path_with_namespace', args.name)}")
    return project


async def create_branch(client: RestClient, args: CreateBranchParams) -> dict:
    """Create a branch; without ``ref`` it starts from the project's default branch."""
    ref = args.ref or await get_default_branch(client, args.project_id)
    branch = await client.post(
        f"{_project(args.project_id)}/repository/branches", json={"branch": args.branch, "ref": ref}
    )
    logger.info(f"Created branch {args.branch} from {ref} in project {args.project_id}")
    return branch


# ============================================================================
# File and Commit Handlers
# ============================================================================

async def get_file_content(client: RestClient, args: FileContentParams) -> dict:
    """Fetch one file and decode it to text.

    Without ``ref`` the project's default branch is looked up first.

    Raises:
        NotAFileError: if the path resolves to a directory listing
    """
    ref = args.ref or await get_default_branch(client, args.project_id)
    data = await client.get(
        f"{_project(args.project_id)}/repository/files/{encode_path_segment(args.file_path)}",
        params={"ref": ref},
    )
    if isinstance(data, list):
        raise NotAFileError(args.file_path)

    raw = data.get("content") or ""
    content = decode_base64_content(raw) if data.get("encoding", "base64") == "base64" else raw
    return {
        "content": content,
        "filePath": data.get("file_path"),
        "fileName": data.get("file_name"),
        "size": data.get("size"),
        "encoding": "utf-8",
        "ref": data.get("ref", ref),
        "blobId": data.get("blob_id"),
        "commitId": data.get("commit_id"),
        "lastCommitId": data.get("last_commit_id"),
    }


async def create_or_update_file(client: RestClient, args: CreateOrUpdateFileParams) -> dict:
    """Create a file, or update it when it already exists on the branch.

    The existing file is read first. When found, the update carries its
    ``commit_id``/``last_commit_id`` unless the caller supplied them.
    """
    path = f"{_project(args.project_id)}/repository/files/{encode_path_segment(args.file_path)}"
    payload = {
        "branch": args.branch,
        "content": args.content,
        "commit_message": args.commit_message,
        "encoding": "text",
        "previous_path": args.previous_path,
        "commit_id": args.commit_id,
        "last_commit_id": args.last_commit_id,
    }

    method = "POST"
    try:
        existing = await client.get(path, params={"ref": args.branch})
    except NotFoundError:
        logger.info(f"{args.file_path} not found on {args.branch}, creating it")
    else:
        if isinstance(existing, list):
            raise NotAFileError(args.file_path)
        method = "PUT"
        payload["commit_id"] = args.commit_id or existing.get("commit_id")
        payload["last_commit_id"] = args.last_commit_id or existing.get("last_commit_id")

    result = await client.request(method, path, json=payload)
    logger.info(f"{'Updated' if method == 'PUT' else 'Created'} {args.file_path} on {args.branch}")
    return result


async def push_files(client: RestClient, args: PushFilesParams) -> dict:
    """Create several files in one commit."""
    commit = await client.post(
        f"{_project(args.project_id)}/repository/commits",
        json={
            "branch": args.branch,
            "commit_message": args.commit_message,
            "actions": [
                {"action": "create", "file_path": f.file_path, "content": f.content, "encoding": "text"}
                for f in args.files
            ],
        },
    )
    logger.info(f"Pushed {len(args.files)} files to {args.branch} in project {args.project_id}")
    return commit


async def get_commit_details(client: RestClient, args: CommitParams) -> dict:
    base = f"{_project(args.project_id)}/repository/commits/{encode_path_segment(args.sha)}"
    commit = await client.get(base)
    diff = await client.get(f"{base}/diff")
    return {"commit": commit, "diff": diff}


async def list_user_events(client: RestClient, args: ListUserEventsParams) -> dict:
    """Events of one user, or of the authenticated user when no ID is given."""
    path = f"/users/{args.user_id}/events" if args.user_id else "/events"
    events = await client.get(
        path, params=args.remote_fields("action", "target_type", "before", "after", "page", "per_page")
    )
    return {"events": events}


# ============================================================================
# Merge Request Handlers
# ============================================================================

async def list_open_merge_requests(client: RestClient, args: VerboseProjectParams) -> list:
    mrs = await client.get(f"{_project(args.project_id)}/merge_requests", params={"state": "opened"})
    if args.verbose:
        return mrs
    return [_pick(mr, MR_LIST_FIELDS) for mr in mrs]


async def get_mr_details(client: RestClient, args: VerboseMRParams) -> dict:
    """Merge request, its notes and its commits, fetched one after another."""
    base = f"{_project(args.project_id)}/merge_requests/{args.merge_request_iid}"
    mr = await client.get(base)
    notes = await client.get(f"{base}/notes")
    commits = await client.get(f"{base}/commits")
    return {
        "mergeRequest": mr if args.verbose else _pick(mr, MR_DETAIL_FIELDS),
        "notes": notes,
        "commits": commits,
    }


async def get_merge_request_diffs(client: RestClient, args: MRDiffsParams) -> list:
    data = await client.get(
        f"{_project(args.project_id)}/merge_requests/{args.merge_request_iid}/changes",
        params={"view": args.view},
    )
    return data.get("changes", [])


async def get_merge_request_comments(client: RestClient, args: VerboseMRParams) -> Union[list, dict]:
    """Unresolved comments of a merge request, split into general and diff notes.

    With ``verbose`` the raw discussions are returned instead.
    """
    discussions = await client.get(
        f"{_project(args.project_id)}/merge_requests/{args.merge_request_iid}/discussions"
    )
    if args.verbose:
        return discussions

    unresolved = [
        note
        for discussion in discussions
        for note in discussion.get("notes") or []
        if note.get("resolved") is False
    ]

    def summary(note: dict) -> dict:
        return {
            "id": note.get("id"),
            "noteable_id": note.get("noteable_id"),
            "body": note.get("body"),
            "author_name": (note.get("author") or {}).get("name"),
        }

    return {
        "discussionNotes": [summary(n) for n in unresolved if n.get("type") == "DiscussionNote"],
        "diffNotes": [
            {**summary(n), "position": n.get("position")} for n in unresolved if n.get("type") == "DiffNote"
        ],
    }


async def update_merge_request(client: RestClient, args: UpdateMRParams) -> dict:
    payload = args.remote_fields(
        "title",
        "description",
        "target_branch",
        "assignee_ids",
        "state_event",
        "remove_source_branch",
        "squash",
        "draft",
    )
    payload["labels"] = _join_labels(args.labels)
    return await client.put(f"{_project(args.project_id)}/merge_requests/{args.merge_request_iid}", json=payload)


async def create_note(client: RestClient, args: CreateNoteParams) -> dict:
    return await client.post(
        f"{_project(args.project_id)}/{args.noteable_type}s/{args.noteable_iid}/notes", json={"body": args.body}
    )


async def add_merge_request_diff_comment(client: RestClient, args: DiffCommentParams) -> dict:
    """Start a discussion anchored at a line of the merge request's diff."""
    return await client.post(
        f"{_project(args.project_id)}/merge_requests/{args.merge_request_iid}/discussions",
        json={
            "body": args.comment,
            "position": {
                "position_type": "text",
                "base_sha": args.base_sha,
                "start_sha": args.start_sha,
                "head_sha": args.head_sha,
                "old_path": args.file_path,
                "new_path": args.file_path,
                "new_line": args.line_number,
            },
        },
    )


# ============================================================================
# Issue Handlers
# ============================================================================

async def list_issues(client: RestClient, args: ListIssuesParams) -> list:
    params = args.remote_fields(
        "state", "assignee_id", "author_id", "milestone", "scope", "search", "order_by", "sort", "page", "per_page"
    )
    params["labels"] = _join_labels(args.labels)
    return await client.get(f"{_project(args.project_id)}/issues", params=params)


async def create_issue(client: RestClient, args: CreateIssueParams) -> dict:
    payload = args.remote_fields("title", "description", "assignee_ids", "milestone_id")
    payload["labels"] = _join_labels(args.labels)
    issue = await client.post(f"{_project(args.project_id)}/issues", json=payload)
    logger.info(f"Created issue #{issue.get('iid')} in project {args.project_id}")
    return issue


async def update_issue(client: RestClient, args: UpdateIssueParams) -> dict:
    payload = args.remote_fields(
        "title", "description", "assignee_ids", "milestone_id", "state_event", "confidential", "due_date"
    )
    payload["labels"] = _join_labels(args.labels)
    return await client.put(f"{_project(args.project_id)}/issues/{args.issue_iid}", json=payload)


# ============================================================================
# Tool Definitions
# ============================================================================

_PAGING = ("page", "per_page")


def _deleted(what: str) -> dict:
    return {"status": "success", "message": f"{what} deleted successfully"}


TOOLS = [
    # Projects
    ToolDescriptor(
        name="gitlab_list_projects",
        description="List GitLab projects accessible to the authenticated user",
        parameters=ListProjectsParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET",
            "/projects",
            query=("search", "owned", "membership", "starred", "simple", "visibility", "order_by", "sort") + _PAGING,
        ),
    ),
    ToolDescriptor(
        name="gitlab_search_repositories",
        description="Search for GitLab projects",
        parameters=SearchRepositoriesParams,
        group=GROUP,
        read_only=True,
        handler=search_repositories,
    ),
    ToolDescriptor(
        name="gitlab_get_project",
        description="Get details of a specific project",
        parameters=GetProjectParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/projects/{project_id}", query=("license", "statistics")),
    ),
    ToolDescriptor(
        name="gitlab_list_group_projects",
        description="List projects in a GitLab group with filtering options",
        parameters=ListGroupProjectsParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET",
            "/groups/{group_id}/projects",
            query=(
                "include_subgroups",
                "search",
                "order_by",
                "sort",
                "archived",
                "visibility",
                "with_issues_enabled",
                "with_merge_requests_enabled",
                "min_access_level",
                "starred",
            ) + _PAGING,
        ),
    ),
    ToolDescriptor(
        name="gitlab_create_repository",
        description="Create a new GitLab project",
        parameters=CreateRepositoryParams,
        group=GROUP,
        read_only=False,
        handler=create_repository,
    ),
    ToolDescriptor(
        name="gitlab_fork_repository",
        description="Fork a GitLab project to your account or specified namespace",
        parameters=ForkRepositoryParams,
        group=GROUP,
        read_only=False,
        handler=RestCall("POST", "/projects/{project_id}/fork", query=("namespace",)),
    ),
    ToolDescriptor(
        name="gitlab_create_branch",
        description="Create a new branch in a GitLab project",
        parameters=CreateBranchParams,
        group=GROUP,
        read_only=False,
        handler=create_branch,
    ),
    # Files and commits
    ToolDescriptor(
        name="gitlab_get_file_content",
        description="Get the contents of a file from a GitLab project. Uses the default branch when no ref is given",
        parameters=FileContentParams,
        group=GROUP,
        read_only=True,
        handler=get_file_content,
    ),
    ToolDescriptor(
        name="gitlab_create_or_update_file",
        description="Create or update a single file in a GitLab project",
        parameters=CreateOrUpdateFileParams,
        group=GROUP,
        read_only=False,
        handler=create_or_update_file,
    ),
    ToolDescriptor(
        name="gitlab_push_files",
        description="Push multiple files to a GitLab project in a single commit",
        parameters=PushFilesParams,
        group=GROUP,
        read_only=False,
        handler=push_files,
    ),
    ToolDescriptor(
        name="gitlab_list_pipelines",
        description="List pipelines for a GitLab project",
        parameters=ListPipelinesParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET", "/projects/{project_id}/pipelines", query=("scope", "status", "ref") + _PAGING, wrap="pipelines"
        ),
    ),
    ToolDescriptor(
        name="gitlab_list_commits",
        description="List commits in a GitLab project within a date range",
        parameters=ListCommitsParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET",
            "/projects/{project_id}/repository/commits",
            query=("ref_name", "since", "until", "path") + _PAGING,
            wrap="commits",
        ),
    ),
    ToolDescriptor(
        name="gitlab_get_commit_details",
        description="Get details of a commit including its diff",
        parameters=CommitParams,
        group=GROUP,
        read_only=True,
        handler=get_commit_details,
    ),
    # Users and groups
    ToolDescriptor(
        name="gitlab_list_user_events",
        description="List GitLab user events within a date range",
        parameters=ListUserEventsParams,
        group=GROUP,
        read_only=True,
        handler=list_user_events,
    ),
    ToolDescriptor(
        name="gitlab_list_group_users",
        description="List all users in a GitLab group",
        parameters=ListGroupUsersParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/groups/{group_id}/members", query=("query",) + _PAGING, wrap="users"),
    ),
    # Merge requests
    ToolDescriptor(
        name="gitlab_list_mrs",
        description="List merge requests of a project",
        parameters=ListMRsParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET",
            "/projects/{project_id}/merge_requests",
            query=("state", "order_by", "sort") + _PAGING,
            wrap="mergeRequests",
        ),
    ),
    ToolDescriptor(
        name="gitlab_list_open_merge_requests",
        description="List all open merge requests in the project",
        parameters=VerboseProjectParams,
        group=GROUP,
        read_only=True,
        handler=list_open_merge_requests,
    ),
    ToolDescriptor(
        name="gitlab_get_mr_details",
        description="Get details about a merge request (title, description, state, branches, merge status) "
                    "together with its notes and commits",
        parameters=VerboseMRParams,
        group=GROUP,
        read_only=True,
        handler=get_mr_details,
    ),
    ToolDescriptor(
        name="gitlab_get_merge_request_diffs",
        description="Get the changes/diffs of a merge request",
        parameters=MRDiffsParams,
        group=GROUP,
        read_only=True,
        handler=get_merge_request_diffs,
    ),
    ToolDescriptor(
        name="gitlab_list_merge_request_discussions",
        description="List discussion items for a merge request",
        parameters=MRParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/projects/{project_id}/merge_requests/{merge_request_iid}/discussions"),
    ),
    ToolDescriptor(
        name="gitlab_get_merge_request_comments",
        description="Get unresolved general and file diff comments of a merge request",
        parameters=VerboseMRParams,
        group=GROUP,
        read_only=True,
        handler=get_merge_request_comments,
    ),
    ToolDescriptor(
        name="gitlab_create_mr",
        description="Create a new merge request",
        parameters=CreateMRParams,
        group=GROUP,
        read_only=False,
        handler=RestCall(
            "POST",
            "/projects/{project_id}/merge_requests",
            body=(
                "source_branch",
                "target_branch",
                "title",
                "description",
                "assignee_id",
                "target_project_id",
                "labels",
                "remove_source_branch",
                "allow_collaboration",
                "draft",
            ),
            wrap="mergeRequest",
        ),
    ),
    ToolDescriptor(
        name="gitlab_update_merge_request",
        description="Update a merge request",
        parameters=UpdateMRParams,
        group=GROUP,
        read_only=False,
        handler=update_merge_request,
    ),
    ToolDescriptor(
        name="gitlab_create_mr_note",
        description="Create a note on a merge request",
        parameters=MRNoteParams,
        group=GROUP,
        read_only=False,
        handler=RestCall(
            "POST", "/projects/{project_id}/merge_requests/{merge_request_iid}/notes", body=("body",), wrap="note"
        ),
    ),
    ToolDescriptor(
        name="gitlab_create_note",
        description="Create a new note (comment) on an issue or merge request",
        parameters=CreateNoteParams,
        group=GROUP,
        read_only=False,
        handler=create_note,
    ),
    ToolDescriptor(
        name="gitlab_update_merge_request_note",
        description="Modify an existing merge request thread note",
        parameters=UpdateMRNoteParams,
        group=GROUP,
        read_only=False,
        handler=RestCall(
            "PUT",
            "/projects/{project_id}/merge_requests/{merge_request_iid}/discussions/{discussion_id}/notes/{note_id}",
            body=("body", "resolved"),
        ),
    ),
    ToolDescriptor(
        name="gitlab_add_merge_request_diff_comment",
        description="Add a comment to a merge request at a specific line in a file diff",
        parameters=DiffCommentParams,
        group=GROUP,
        read_only=False,
        handler=add_merge_request_diff_comment,
    ),
    # Issues
    ToolDescriptor(
        name="gitlab_list_issues",
        description="List issues in a GitLab project with filtering options",
        parameters=ListIssuesParams,
        group=GROUP,
        read_only=True,
        handler=list_issues,
    ),
    ToolDescriptor(
        name="gitlab_get_issue",
        description="Get details of a specific issue in a GitLab project",
        parameters=IssueParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/projects/{project_id}/issues/{issue_iid}"),
    ),
    ToolDescriptor(
        name="gitlab_create_issue",
        description="Create a new issue in a GitLab project",
        parameters=CreateIssueParams,
        group=GROUP,
        read_only=False,
        handler=create_issue,
    ),
    ToolDescriptor(
        name="gitlab_update_issue",
        description="Update an issue in a GitLab project",
        parameters=UpdateIssueParams,
        group=GROUP,
        read_only=False,
        handler=update_issue,
    ),
    ToolDescriptor(
        name="gitlab_delete_issue",
        description="Delete an issue from a GitLab project",
        parameters=IssueParams,
        group=GROUP,
        read_only=False,
        handler=RestCall("DELETE", "/projects/{project_id}/issues/{issue_iid}", success=_deleted("Issue")),
    ),
    ToolDescriptor(
        name="gitlab_list_issue_links",
        description="List all issue links for a specific issue",
        parameters=IssueParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/projects/{project_id}/issues/{issue_iid}/links"),
    ),
    ToolDescriptor(
        name="gitlab_get_issue_link",
        description="Get a specific issue link",
        parameters=IssueLinkParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/projects/{project_id}/issues/{issue_iid}/links/{issue_link_id}"),
    ),
    ToolDescriptor(
        name="gitlab_create_issue_link",
        description="Create an issue link between two issues",
        parameters=CreateIssueLinkParams,
        group=GROUP,
        read_only=False,
        handler=RestCall(
            "POST",
            "/projects/{project_id}/issues/{issue_iid}/links",
            body=("target_project_id", "target_issue_iid", "link_type"),
        ),
    ),
    ToolDescriptor(
        name="gitlab_delete_issue_link",
        description="Delete an issue link",
        parameters=IssueLinkParams,
        group=GROUP,
        read_only=False,
        handler=RestCall(
            "DELETE",
            "/projects/{project_id}/issues/{issue_iid}/links/{issue_link_id}",
            success=_deleted("Issue link"),
        ),
    ),
    # Namespaces
    ToolDescriptor(
        name="gitlab_list_namespaces",
        description="List all namespaces available to the current user",
        parameters=ListNamespacesParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/namespaces", query=("search", "owned") + _PAGING),
    ),
    ToolDescriptor(
        name="gitlab_get_namespace",
        description="Get details of a namespace by ID or path",
        parameters=NamespaceParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/namespaces/{namespace_id}"),
    ),
    ToolDescriptor(
        name="gitlab_verify_namespace",
        description="Verify if a namespace path exists",
        parameters=VerifyNamespaceParams,
        group=GROUP,
        read_only=True,
        handler=RestCall("GET", "/namespaces/{path}/exists", query=("parent_id",)),
    ),
    # Labels
    ToolDescriptor(
        name="gitlab_list_labels",
        description="List labels for a project",
        parameters=ListLabelsParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET", "/projects/{project_id}/labels", query=("with_counts", "include_ancestor_groups", "search")
        ),
    ),
    ToolDescriptor(
        name="gitlab_get_label",
        description="Get a single label from a project",
        parameters=GetLabelParams,
        group=GROUP,
        read_only=True,
        handler=RestCall(
            "GET", "/projects/{project_id}/labels/{label_id}", query=("include_ancestor_groups",)
        ),
    ),
    ToolDescriptor(
        name="gitlab_create_label",
        description="Create a new label in a project",
        parameters=CreateLabelParams,
        group=GROUP,
        read_only=False,
        handler=RestCall(
            "POST", "/projects/{project_id}/labels", body=("name", "color", "description", "priority")
        ),
    ),
    ToolDescriptor(
        name="gitlab_update_label",
        description="Update an existing label in a project",
        parameters=UpdateLabelParams,
        group=GROUP,
        read_only=False,
        handler=RestCall(
            "PUT",
            "/projects/{project_id}/labels/{label_id}",
            body=("new_name", "color", "description", "priority"),
        ),
    ),
    ToolDescriptor(
        name="gitlab_delete_label",
        description="Delete a label from a project",
        parameters=LabelParams,
        group=GROUP,
        read_only=False,
        handler=RestCall("DELETE", "/projects/{project_id}/labels/{label_id}", success=_deleted("Label")),
    ),
]
