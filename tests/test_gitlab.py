"""Tests for GitLab tool handlers against a stubbed API."""
import base64

import pytest

from devkit_mcp.errors import AuthError, NotAFileError, RateLimitError
from devkit_mcp.tools import gitlab

PROJECT = "/projects/group%2Fapp"
FILE = f"{PROJECT}/repository/files/src%2Fapp.py"


@pytest.fixture
def client(settings, gitlab_stub):
    return gitlab.create_client(settings, transport=gitlab_stub.transport)


class TestGetFileContent:
    """Test default-branch resolution and file decoding."""

    @pytest.mark.asyncio
    async def test_default_branch_resolved_first(self, client, gitlab_stub):
        gitlab_stub.add("GET", PROJECT, json={"id": 1, "default_branch": "develop"})
        gitlab_stub.add(
            "GET",
            FILE,
            json={
                "file_path": "src/app.py",
                "file_name": "app.py",
                "size": 5,
                "encoding": "base64",
                "content": base64.b64encode(b"hello").decode(),
                "ref": "develop",
                "blob_id": "b1",
                "commit_id": "c1",
                "last_commit_id": "c0",
            },
        )

        result = await gitlab.get_file_content(
            client, gitlab.FileContentParams(project_id="group/app", file_path="src/app.py")
        )

        assert gitlab_stub.calls == [("GET", PROJECT), ("GET", FILE)]
        assert gitlab_stub.params(1) == {"ref": "develop"}
        assert result["content"] == "hello"
        assert result["filePath"] == "src/app.py"
        assert result["lastCommitId"] == "c0"

    @pytest.mark.asyncio
    async def test_missing_default_branch_falls_back_to_main(self, client, gitlab_stub):
        gitlab_stub.add("GET", "/projects/42", json={"id": 42})
        gitlab_stub.add("GET", "/projects/42/repository/files/README.md", json={"content": ""})

        await gitlab.get_file_content(client, gitlab.FileContentParams(project_id=42, file_path="README.md"))

        assert gitlab_stub.params(1) == {"ref": "main"}

    @pytest.mark.asyncio
    async def test_directory_listing_rejected(self, client, gitlab_stub):
        gitlab_stub.add("GET", f"{PROJECT}/repository/files/src", json=[{"name": "app.py"}])
        with pytest.raises(NotAFileError):
            await gitlab.get_file_content(
                client, gitlab.FileContentParams(project_id="group/app", file_path="src", ref="main")
            )

    @pytest.mark.asyncio
    async def test_private_token_header_sent(self, client, gitlab_stub):
        gitlab_stub.add("GET", FILE, json={"content": ""})
        await gitlab.get_file_content(
            client, gitlab.FileContentParams(project_id="group/app", file_path="src/app.py", ref="main")
        )
        request = gitlab_stub.requests[0]
        assert request.headers["PRIVATE-TOKEN"] == "gitlab-token"
        assert str(request.url).startswith("https://gitlab.example.com/api/v4/")


class TestCreateOrUpdateFile:
    """Test create-vs-update selection from the existing file."""

    def params(self, **overrides):
        values = dict(
            project_id="group/app", file_path="src/app.py", content="print()", commit_message="msg", branch="main"
        )
        values.update(overrides)
        return gitlab.CreateOrUpdateFileParams(**values)

    @pytest.mark.asyncio
    async def test_missing_file_is_created(self, client, gitlab_stub):
        gitlab_stub.add("POST", FILE, status=201, json={"file_path": "src/app.py", "branch": "main"})

        result = await gitlab.create_or_update_file(client, self.params())

        assert gitlab_stub.calls == [("GET", FILE), ("POST", FILE)]
        assert gitlab_stub.body(1) == {
            "branch": "main",
            "content": "print()",
            "commit_message": "msg",
            "encoding": "text",
        }
        assert result == {"file_path": "src/app.py", "branch": "main"}

    @pytest.mark.asyncio
    async def test_existing_file_updated_with_commit_ids(self, client, gitlab_stub):
        gitlab_stub.add("GET", FILE, json={"commit_id": "c1", "last_commit_id": "c0"})
        gitlab_stub.add("PUT", FILE, json={"file_path": "src/app.py"})

        await gitlab.create_or_update_file(client, self.params())

        assert gitlab_stub.calls[1] == ("PUT", FILE)
        body = gitlab_stub.body(1)
        assert body["commit_id"] == "c1"
        assert body["last_commit_id"] == "c0"

    @pytest.mark.asyncio
    async def test_caller_commit_ids_take_precedence(self, client, gitlab_stub):
        gitlab_stub.add("GET", FILE, json={"commit_id": "c1", "last_commit_id": "c0"})
        gitlab_stub.add("PUT", FILE, json={})

        await gitlab.create_or_update_file(client, self.params(last_commit_id="mine"))

        assert gitlab_stub.body(1)["last_commit_id"] == "mine"
        assert gitlab_stub.body(1)["commit_id"] == "c1"

    @pytest.mark.asyncio
    async def test_rate_limited_read_is_not_treated_as_missing(self, client, gitlab_stub):
        gitlab_stub.add("GET", FILE, status=403, json={"message": "User API Key Rate limit exceeded"})

        with pytest.raises(RateLimitError):
            await gitlab.create_or_update_file(client, self.params())
        assert len(gitlab_stub.calls) == 1

    @pytest.mark.asyncio
    async def test_forbidden_read_propagates(self, client, gitlab_stub):
        gitlab_stub.add("GET", FILE, status=401, json={"message": "401 Unauthorized"})
        with pytest.raises(AuthError):
            await gitlab.create_or_update_file(client, self.params())


class TestProjects:
    """Test project and branch handlers."""

    @pytest.mark.asyncio
    async def test_create_branch_defaults_to_default_branch(self, client, gitlab_stub):
        gitlab_stub.add("GET", PROJECT, json={"default_branch": "trunk"})
        gitlab_stub.add("POST", f"{PROJECT}/repository/branches", status=201, json={"name": "feature"})

        await gitlab.create_branch(client, gitlab.CreateBranchParams(project_id="group/app", branch="feature"))

        assert gitlab_stub.body(1) == {"branch": "feature", "ref": "trunk"}

    @pytest.mark.asyncio
    async def test_create_branch_with_ref_skips_lookup(self, client, gitlab_stub):
        gitlab_stub.add("POST", f"{PROJECT}/repository/branches", status=201, json={"name": "feature"})

        await gitlab.create_branch(
            client, gitlab.CreateBranchParams(project_id="group/app", branch="feature", ref="v2")
        )

        assert len(gitlab_stub.calls) == 1

    @pytest.mark.asyncio
    async def test_search_repositories_summary(self, client, gitlab_stub):
        gitlab_stub.add("GET", "/projects", json=[{"id": 1}, {"id": 2}])

        result = await gitlab.search_repositories(client, gitlab.SearchRepositoriesParams(search="app", page=2))

        assert result == {"current_page": 2, "count": 2, "items": [{"id": 1}, {"id": 2}]}
        assert gitlab_stub.params(0)["search"] == "app"

    @pytest.mark.asyncio
    async def test_create_repository_slugifies_path(self, client, gitlab_stub):
        gitlab_stub.add("POST", "/projects", status=201, json={"path_with_namespace": "me/my-new-app"})

        await gitlab.create_repository(client, gitlab.CreateRepositoryParams(name="My New  App"))

        body = gitlab_stub.body(0)
        assert body["name"] == "My New  App"
        assert body["path"] == "my-new-app"
        assert body["default_branch"] == "main"


class TestMergeRequests:
    """Test summarized and verbose merge request reads."""

    @pytest.mark.asyncio
    async def test_open_merge_requests_summarized(self, client, gitlab_stub):
        mr = {"iid": 3, "project_id": 1, "title": "Fix", "description": "d", "state": "opened",
              "web_url": "u", "author": {"name": "someone"}}
        gitlab_stub.add("GET", f"{PROJECT}/merge_requests", json=[mr])

        result = await gitlab.list_open_merge_requests(client, gitlab.VerboseProjectParams(project_id="group/app"))

        assert gitlab_stub.params(0) == {"state": "opened"}
        assert result == [{k: mr[k] for k in gitlab.MR_LIST_FIELDS}]

    @pytest.mark.asyncio
    async def test_open_merge_requests_verbose(self, client, gitlab_stub):
        gitlab_stub.add("GET", f"{PROJECT}/merge_requests", json=[{"iid": 3, "extra": True}])
        result = await gitlab.list_open_merge_requests(
            client, gitlab.VerboseProjectParams(project_id="group/app", verbose=True)
        )
        assert result == [{"iid": 3, "extra": True}]

    @pytest.mark.asyncio
    async def test_comments_keep_only_unresolved(self, client, gitlab_stub):
        discussions = [
            {"notes": [
                {"id": 1, "type": "DiscussionNote", "resolved": False, "body": "open", "author": {"name": "a"}},
                {"id": 2, "type": "DiscussionNote", "resolved": True, "body": "done"},
            ]},
            {"notes": [
                {"id": 3, "type": "DiffNote", "resolved": False, "body": "line", "position": {"new_line": 4}},
                {"id": 4, "type": None, "body": "system note"},
            ]},
        ]
        gitlab_stub.add("GET", f"{PROJECT}/merge_requests/3/discussions", json=discussions)

        result = await gitlab.get_merge_request_comments(
            client, gitlab.VerboseMRParams(project_id="group/app", merge_request_iid=3)
        )

        assert [n["id"] for n in result["discussionNotes"]] == [1]
        assert result["discussionNotes"][0]["author_name"] == "a"
        assert [n["id"] for n in result["diffNotes"]] == [3]
        assert result["diffNotes"][0]["position"] == {"new_line": 4}

    @pytest.mark.asyncio
    async def test_diffs_return_changes(self, client, gitlab_stub):
        gitlab_stub.add("GET", f"{PROJECT}/merge_requests/3/changes", json={"changes": [{"new_path": "a.py"}]})
        result = await gitlab.get_merge_request_diffs(
            client, gitlab.MRDiffsParams(project_id="group/app", merge_request_iid=3)
        )
        assert result == [{"new_path": "a.py"}]
