"""Tests for GitHub tool handlers against a stubbed API."""
import base64

import pytest

from devkit_mcp.errors import AuthError, NotAFileError, PartialSuccessError
from devkit_mcp.tools import github

REPO = "/repos/octo/app"
CONTENTS = f"{REPO}/contents/src/main.py"


def encoded(text):
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.fixture
def client(settings, stub):
    return github.create_client(settings, transport=stub.transport)


class TestGetFileContent:
    """Test default-branch resolution and decoding of file contents."""

    @pytest.mark.asyncio
    async def test_default_branch_looked_up_once(self, client, stub):
        stub.add("GET", REPO, json={"default_branch": "trunk"})
        stub.add("GET", CONTENTS, json={"type": "file", "content": encoded("print('hi')\n"), "sha": "abc"})

        result = await github.get_file_content(
            client, github.FileContentParams(owner="octo", repo="app", path="src/main.py")
        )

        assert stub.calls == [("GET", REPO), ("GET", CONTENTS)]
        assert stub.params(1) == {"ref": "trunk"}
        assert result["content"] == "print('hi')\n"
        assert result["ref"] == "trunk"
        assert result["sha"] == "abc"

    @pytest.mark.asyncio
    async def test_explicit_ref_skips_lookup(self, client, stub):
        stub.add("GET", CONTENTS, json={"type": "file", "content": encoded("x")})

        await github.get_file_content(
            client, github.FileContentParams(owner="octo", repo="app", path="src/main.py", ref="v1")
        )

        assert stub.calls == [("GET", CONTENTS)]
        assert stub.params(0) == {"ref": "v1"}

    @pytest.mark.asyncio
    async def test_directory_rejected(self, client, stub):
        stub.add("GET", f"{REPO}/contents/src", json=[{"type": "file", "name": "main.py"}])

        with pytest.raises(NotAFileError):
            await github.get_file_content(
                client, github.FileContentParams(owner="octo", repo="app", path="src", ref="main")
            )

    @pytest.mark.asyncio
    async def test_authorization_header_sent(self, client, stub):
        stub.add("GET", CONTENTS, json={"type": "file", "content": ""})
        await github.get_file_content(
            client, github.FileContentParams(owner="octo", repo="app", path="src/main.py", ref="main")
        )
        assert stub.requests[0].headers["Authorization"] == "Bearer github-token"


class TestCreateOrUpdateFile:
    """Test that the existing file decides between create and update."""

    def params(self, **overrides):
        values = dict(owner="octo", repo="app", path="src/main.py", content="new", message="msg", branch="main")
        values.update(overrides)
        return github.CreateOrUpdateFileParams(**values)

    @pytest.mark.asyncio
    async def test_missing_file_created_without_sha(self, client, stub):
        stub.add("PUT", CONTENTS, status=201, json={"content": {"sha": "new"}, "commit": {"sha": "c1"}})

        result = await github.create_or_update_file(client, self.params())

        assert stub.calls == [("GET", CONTENTS), ("PUT", CONTENTS)]
        body = stub.body(1)
        assert "sha" not in body
        assert body["branch"] == "main"
        assert base64.b64decode(body["content"]).decode() == "new"
        assert result["action"] == "created"

    @pytest.mark.asyncio
    async def test_existing_file_updated_with_sha(self, client, stub):
        stub.add("GET", CONTENTS, json={"type": "file", "sha": "old-sha"})
        stub.add("PUT", CONTENTS, json={"content": {}, "commit": {}})

        result = await github.create_or_update_file(client, self.params())

        assert stub.body(1)["sha"] == "old-sha"
        assert result["action"] == "updated"

    @pytest.mark.asyncio
    async def test_other_read_failures_propagate(self, client, stub):
        stub.add("GET", CONTENTS, status=403, json={"message": "Resource not accessible"})

        with pytest.raises(AuthError):
            await github.create_or_update_file(client, self.params())
        assert [c[0] for c in stub.calls] == ["GET"]

    @pytest.mark.asyncio
    async def test_branch_defaults_to_default_branch(self, client, stub):
        stub.add("GET", REPO, json={"default_branch": "develop"})
        stub.add("PUT", CONTENTS, json={"content": {}, "commit": {}})

        await github.create_or_update_file(client, self.params(branch=None))

        assert stub.params(1) == {"ref": "develop"}
        assert stub.body(2)["branch"] == "develop"


class TestCompositeActions:
    """Test state-change-then-comment sequencing and partial success."""

    @pytest.mark.asyncio
    async def test_approve_is_single_review(self, client, stub):
        stub.add("POST", f"{REPO}/pulls/5/reviews", json={"id": 1, "state": "APPROVED"})

        result = await github.pr_action(
            client, github.PRActionParams(owner="octo", repo="app", pr_number=5, action="approve", comment="LGTM")
        )

        assert stub.calls == [("POST", f"{REPO}/pulls/5/reviews")]
        assert stub.body(0) == {"event": "APPROVE", "body": "LGTM"}
        assert result["review"]["state"] == "APPROVED"

    @pytest.mark.asyncio
    async def test_close_then_comment(self, client, stub):
        stub.add("PATCH", f"{REPO}/pulls/5", json={"number": 5, "state": "closed"})
        stub.add("POST", f"{REPO}/issues/5/comments", status=201, json={"id": 9})

        result = await github.pr_action(
            client, github.PRActionParams(owner="octo", repo="app", pr_number=5, action="close", comment="bye")
        )

        assert stub.calls == [("PATCH", f"{REPO}/pulls/5"), ("POST", f"{REPO}/issues/5/comments")]
        assert result["comment"] == {"id": 9}

    @pytest.mark.asyncio
    async def test_comment_failure_after_close_is_partial_success(self, client, stub):
        stub.add("PATCH", f"{REPO}/pulls/5", json={"number": 5, "state": "closed"})
        stub.add("POST", f"{REPO}/issues/5/comments", status=500, json={"message": "boom"})

        with pytest.raises(PartialSuccessError) as exc_info:
            await github.pr_action(
                client, github.PRActionParams(owner="octo", repo="app", pr_number=5, action="close", comment="bye")
            )

        error = exc_info.value
        assert error.completed == {"pullRequest": {"number": 5, "state": "closed"}}
        assert error.details["failed"]["step"] == "add comment"

    @pytest.mark.asyncio
    async def test_issue_action_changes_state_before_commenting(self, client, stub):
        stub.add("PATCH", f"{REPO}/issues/3", json={"number": 3, "state": "open"})
        stub.add("POST", f"{REPO}/issues/3/comments", status=201, json={"id": 1})

        await github.issue_action(
            client, github.IssueActionParams(owner="octo", repo="app", issue_number=3, action="reopen", comment="again")
        )

        assert stub.calls == [("PATCH", f"{REPO}/issues/3"), ("POST", f"{REPO}/issues/3/comments")]
        assert stub.body(0) == {"state": "open"}

    @pytest.mark.asyncio
    async def test_issue_action_without_comment(self, client, stub):
        stub.add("PATCH", f"{REPO}/issues/3", json={"number": 3, "state": "closed"})

        result = await github.issue_action(
            client, github.IssueActionParams(owner="octo", repo="app", issue_number=3, action="close")
        )

        assert len(stub.calls) == 1
        assert result == {"issue": {"number": 3, "state": "closed"}}


class TestDetails:
    """Test sequential multi-call reads."""

    @pytest.mark.asyncio
    async def test_pr_details_fetches_reviews_and_commits(self, client, stub):
        stub.add("GET", f"{REPO}/pulls/2", json={"number": 2})
        stub.add("GET", f"{REPO}/pulls/2/reviews", json=[])
        stub.add("GET", f"{REPO}/pulls/2/commits", json=[{"sha": "a"}])

        result = await github.get_pr_details(client, github.PRParams(owner="octo", repo="app", pr_number=2))

        assert [c[1] for c in stub.calls] == [f"{REPO}/pulls/2", f"{REPO}/pulls/2/reviews", f"{REPO}/pulls/2/commits"]
        assert result == {"pullRequest": {"number": 2}, "reviews": [], "commits": [{"sha": "a"}]}
