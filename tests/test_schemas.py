"""Tests for parameter validation and response envelopes."""
import pytest
from pydantic import ValidationError

from devkit_mcp.errors import InvalidArgumentsError
from devkit_mcp.schemas import ResponseEnvelope, input_schema, validate_arguments
from devkit_mcp.tools import gitlab, jira, script


class TestValidateArguments:
    """Test schema validation of raw invocation arguments."""

    def test_camel_case_names_accepted(self):
        """Advertised camelCase names populate the snake_case attributes."""
        args = validate_arguments(jira.SearchIssueParams, {"jql": "project = X", "maxResults": 5})
        assert args.jql == "project = X"
        assert args.max_results == 5

    def test_defaults_applied(self):
        """Omitted optional fields take their declared default."""
        args = validate_arguments(jira.SearchIssueParams, {"jql": "project = X"})
        assert args.max_results == 50

    def test_unknown_fields_ignored(self):
        """Extra keys are dropped rather than rejected."""
        args = validate_arguments(jira.IssueKeyParams, {"issueKey": "PROJ-1", "bogus": True})
        assert args.issue_key == "PROJ-1"
        assert not hasattr(args, "bogus")

    def test_all_violations_collected(self):
        """Every violation is reported, not just the first."""
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(jira.CreateIssueParams, {"projectKey": 5})

        paths = [path for path, _ in exc_info.value.violations]
        assert sorted(paths) == ["issueType", "projectKey", "summary"]
        assert exc_info.value.message.startswith("Invalid arguments: ")
        assert "; " in exc_info.value.message

    def test_no_string_to_int_coercion(self):
        """A numeric string is not accepted where an integer is declared."""
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(jira.ListSprintsParams, {"boardId": "12"})
        assert exc_info.value.violations[0][0] == "boardId"

    def test_enumeration_rejects_unknown_value(self):
        """A value outside a Literal enumeration is a violation."""
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(jira.ListSprintsParams, {"boardId": 1, "state": "paused"})
        assert exc_info.value.violations[0][0] == "state"

    def test_nested_violation_has_dotted_path(self):
        """Violations inside nested lists of objects carry the full path."""
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(
                gitlab.PushFilesParams,
                {
                    "projectId": "group/app",
                    "branch": "main",
                    "commitMessage": "add files",
                    "files": [{"filePath": "a.txt", "content": "a"}, {"filePath": "b.txt"}],
                },
            )
        assert exc_info.value.violations == [("files.1.content", "Field required")]

    def test_extension_fields_accept_flat_scalars(self):
        """Custom fields take scalar values but reject nested structures."""
        args = validate_arguments(
            jira.CreateIssueParams,
            {
                "projectKey": "P",
                "issueType": "Bug",
                "summary": "s",
                "customFields": {"customfield_1": 5, "customfield_2": "x", "customfield_3": None},
            },
        )
        assert args.custom_fields["customfield_1"] == 5

        with pytest.raises(InvalidArgumentsError):
            validate_arguments(
                jira.CreateIssueParams,
                {"projectKey": "P", "issueType": "Bug", "summary": "s", "customFields": {"nested": {"a": 1}}},
            )

    def test_blank_script_rejected(self):
        """Field validators surface as ordinary violations."""
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(script.ExecuteScriptParams, {"script": "   "})
        assert exc_info.value.violations[0][0] == "script"

    def test_number_violation_reported_once_at_field_path(self):
        """A wrongly typed number yields one violation at the advertised name."""
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(script.ExecuteScriptParams, {"script": "echo hi", "timeoutSeconds": "5"})
        assert [path for path, _ in exc_info.value.violations] == ["timeoutSeconds"]

    def test_number_accepts_integers(self):
        args = validate_arguments(script.ExecuteScriptParams, {"script": "echo hi", "timeoutSeconds": 5})
        assert args.timeout_seconds == 5

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_number_rejects_non_finite(self, value):
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(script.ExecuteScriptParams, {"script": "echo hi", "timeoutSeconds": value})
        assert [path for path, _ in exc_info.value.violations] == ["timeoutSeconds"]

    def test_id_or_path_union_violation_has_field_path(self):
        """A value rejected by every member of a union is one violation, not one per member."""
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(gitlab.ProjectParams, {"projectId": 1.5})

        violations = exc_info.value.violations
        assert len(violations) == 1
        path, reason = violations[0]
        assert path == "projectId"
        assert " or " in reason

    def test_extension_field_violation_path_ends_at_key(self):
        with pytest.raises(InvalidArgumentsError) as exc_info:
            validate_arguments(
                jira.CreateIssueParams,
                {"projectKey": "P", "issueType": "Bug", "summary": "s", "customFields": {"customfield_9": [1]}},
            )
        assert [path for path, _ in exc_info.value.violations] == ["customFields.customfield_9"]


class TestRemoteFields:
    """Test collection of set fields under their remote names."""

    def test_selected_fields_with_rename(self):
        args = jira.SearchIssueParams(jql="x", max_results=3)
        assert args.remote_fields("jql", rename={"jql": "query"}) == {"query": "x"}

    def test_none_values_omitted(self):
        args = gitlab.ListCommitsParams(project_id=1, since="2024-01-01")
        assert args.remote_fields("since", "until", "path") == {"since": "2024-01-01"}


class TestInputSchema:
    """Test the JSON-Schema advertised to agents."""

    def test_properties_use_camel_case(self):
        schema = input_schema(jira.CreateIssueParams)
        assert schema["type"] == "object"
        assert "projectKey" in schema["properties"]
        assert "project_key" not in schema["properties"]
        assert set(schema["required"]) == {"projectKey", "issueType", "summary"}

    def test_descriptions_and_enumerations_present(self):
        schema = input_schema(jira.ListSprintsParams)
        assert schema["properties"]["boardId"]["description"] == "The Jira board ID"
        state = schema["properties"]["state"]
        enum_values = [v for option in state.get("anyOf", [state]) for v in option.get("enum", [])]
        assert enum_values == ["active", "future", "closed"]


class TestResponseEnvelope:
    """Test the content-xor-error envelope invariant."""

    def test_success(self):
        envelope = ResponseEnvelope.success("{}")
        assert not envelope.is_error
        assert envelope.content == "{}"

    def test_failure(self):
        envelope = ResponseEnvelope.failure("UnknownToolError", "Unknown tool: x", {"tool": "x"})
        assert envelope.is_error
        assert envelope.error.type == "UnknownToolError"
        assert envelope.content is None

    def test_both_or_neither_rejected(self):
        with pytest.raises(ValidationError):
            ResponseEnvelope()
        with pytest.raises(ValidationError):
            ResponseEnvelope(content="x", error={"type": "E", "message": "m"})
