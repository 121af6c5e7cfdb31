"""Tests for the Fix contract and the shared fixes."""

from __future__ import annotations

import pytest
import yaml

from speclint.document import yml
from speclint.document.model import Document
from speclint.linter.fix import FixState, FixUsageError, PromptKind, ScalarTransformFix
from speclint.rules.fixes import (
    AddDescriptionFix,
    AddErrorResponseFix,
    AddPathParameterFix,
    AddRetryAfterHeaderFix,
    AddServerFix,
    AppendRFC8725Fix,
    RemoveDuplicateEnumFix,
    RemoveNullableFix,
    SetAdditionalPropertiesFalseFix,
    SetIntegerFormatFix,
    SetIntegerLimitsFix,
)


def _load(node: yaml.Node) -> object:
    return yaml.safe_load(yml.serialize(node))


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class TestStateMachine:
    def test_automatic_fix_starts_ready(self) -> None:
        root = yml.compose("path: /pets/\n")
        fix = ScalarTransformFix(yml.get_value(root, "path"), lambda s: s.rstrip("/"), "strip")
        assert fix.state is FixState.READY
        assert fix.prompts() == []
        fix.apply_node(root)
        assert fix.state is FixState.APPLIED
        assert yml.get_scalar(root, "path") == "/pets"

    def test_applied_fix_can_be_reapplied(self) -> None:
        root = yml.compose("path: /pets/\n")
        fix = ScalarTransformFix(yml.get_value(root, "path"), lambda s: s.rstrip("/"), "strip")
        fix.apply_node(root)
        fix.apply_node(root)
        assert yml.get_scalar(root, "path") == "/pets"
        assert fix.describe_change() == ("", "")

    def test_interactive_fix_needs_input(self) -> None:
        root = yml.compose("schema: {type: integer}\n")
        fix = SetIntegerLimitsFix(yml.get_value(root, "schema"))
        assert fix.state is FixState.CREATED
        with pytest.raises(FixUsageError, match="needs 2 answer"):
            fix.apply_node(root)

    def test_wrong_arity(self) -> None:
        root = yml.compose("schema: {type: integer}\n")
        fix = SetIntegerLimitsFix(yml.get_value(root, "schema"))
        with pytest.raises(FixUsageError, match="expects 2 answer"):
            fix.set_input(["1"])
        assert fix.state is FixState.CREATED

    def test_rejected_answers_return_to_created(self) -> None:
        root = yml.compose("schema: {type: integer}\n")
        fix = SetIntegerLimitsFix(yml.get_value(root, "schema"))
        fix.set_input(["1", "10"])
        assert fix.state is FixState.READY
        with pytest.raises(FixUsageError, match="greater than"):
            fix.set_input(["10", "1"])
        assert fix.state is FixState.CREATED

    def test_non_integer_answer(self) -> None:
        fix = SetIntegerLimitsFix(yml.compose("type: integer\n"))
        with pytest.raises(FixUsageError, match="must be an integer"):
            fix.set_input(["one", "2"])

    def test_choice_must_be_listed(self) -> None:
        fix = SetIntegerFormatFix(yml.compose("type: integer\n"))
        assert fix.prompts()[0].kind is PromptKind.CHOICE
        with pytest.raises(FixUsageError, match="not a valid answer"):
            fix.set_input(["int16"])

    def test_wrong_layer(self) -> None:
        root = yml.compose("a: x\n")
        tree_fix = ScalarTransformFix(yml.get_value(root, "a"), str.upper, "upper")
        with pytest.raises(FixUsageError, match="apply_node"):
            tree_fix.apply(Document(root=root))
        model_fix = AddServerFix()
        model_fix.set_input(["https://api.example.com"])
        with pytest.raises(FixUsageError, match="apply\\(\\)"):
            model_fix.apply_node(root)

    def test_detached_target_is_a_noop(self) -> None:
        root = yml.compose("a:\n  b: x\n")
        inner = yml.get_value(yml.get_value(root, "a"), "b")
        fix = ScalarTransformFix(inner, str.upper, "upper")
        yml.delete_map_element(root, "a")
        fix.apply_node(root)
        assert inner.value == "x"
        assert fix.state is FixState.READY


# ---------------------------------------------------------------------------
# Automatic fixes
# ---------------------------------------------------------------------------


class TestAutomaticFixes:
    def test_add_error_response(self) -> None:
        root = yml.compose("responses:\n  '200': {description: ok}\n")
        responses = yml.get_value(root, "responses")
        fix = AddErrorResponseFix(responses, "429", "Too Many Requests")
        assert fix.describe_change() == ("", "429: Too Many Requests")
        fix.apply_node(root)
        fix.apply_node(root)
        loaded = _load(root)["responses"]
        assert list(loaded) == ["200", "429"]
        assert loaded["429"] == {
            "description": "Too Many Requests",
            "content": {"application/json": {"schema": {"type": "object"}}},
        }

    def test_add_retry_after_header(self) -> None:
        root = yml.compose("'429': {description: slow down}\n")
        response = yml.get_value(root, "429")
        AddRetryAfterHeaderFix(response).apply_node(root)
        headers = _load(root)["429"]["headers"]
        assert headers["Retry-After"]["schema"] == {"type": "integer"}

    def test_retry_after_header_lookup_is_case_insensitive(self) -> None:
        root = yml.compose("r:\n  headers:\n    retry-after: {schema: {type: integer}}\n")
        fix = AddRetryAfterHeaderFix(yml.get_value(root, "r"))
        assert fix.describe_change() == ("", "")
        fix.apply_node(root)
        assert list(_load(root)["r"]["headers"]) == ["retry-after"]

    def test_append_rfc8725(self) -> None:
        root = yml.compose("s:\n  type: oauth2\n  description: Token auth.\n")
        AppendRFC8725Fix(yml.get_value(root, "s")).apply_node(root)
        assert _load(root)["s"]["description"] == (
            "Token auth. This scheme follows RFC8725 best practices."
        )

    def test_append_rfc8725_without_description(self) -> None:
        root = yml.compose("s:\n  type: oauth2\n")
        fix = AppendRFC8725Fix(yml.get_value(root, "s"))
        fix.apply_node(root)
        fix.apply_node(root)
        assert _load(root)["s"]["description"] == "This scheme follows RFC8725 best practices."

    def test_additional_properties_false(self) -> None:
        root = yml.compose("s:\n  type: object\n  additionalProperties: true\n")
        SetAdditionalPropertiesFalseFix(yml.get_value(root, "s")).apply_node(root)
        assert _load(root)["s"]["additionalProperties"] is False

    def test_remove_duplicate_enum(self) -> None:
        root = yml.compose("enum: [a, b, a, c, b]\n")
        enum = yml.get_value(root, "enum")
        fix = RemoveDuplicateEnumFix(enum, [enum.value[2], enum.value[4]])
        assert fix.describe_change() == ("[a, b, a, c, b]", "[a, b, c]")
        fix.apply_node(root)
        assert _load(root) == {"enum": ["a", "b", "c"]}

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("type: string\nnullable: true\n", {"type": ["string", "null"]}),
            ("type: [string, integer]\nnullable: true\n", {"type": ["string", "integer", "null"]}),
            ("nullable: true\n", {"type": "null"}),
            ("type: string\nnullable: false\n", {"type": "string"}),
        ],
    )
    def test_remove_nullable(self, source: str, expected: dict[str, object]) -> None:
        root = yml.compose(source)
        RemoveNullableFix(root).apply_node(root)
        assert _load(root) == expected

    def test_add_path_parameter(self) -> None:
        root = yml.compose("get:\n  responses: {}\n")
        operation = yml.get_value(root, "get")
        fix = AddPathParameterFix(operation, "petId", "integer", "int64")
        fix.apply_node(root)
        fix.apply_node(root)
        assert _load(root)["get"]["parameters"] == [
            {
                "name": "petId",
                "in": "path",
                "required": True,
                "schema": {"type": "integer", "format": "int64"},
            }
        ]


# ---------------------------------------------------------------------------
# Interactive fixes
# ---------------------------------------------------------------------------


class TestInteractiveFixes:
    def test_add_description(self) -> None:
        root = yml.compose("Pet:\n  type: object\n")
        fix = AddDescriptionFix(yml.get_value(root, "Pet"), "schema 'Pet'")
        assert fix.prompts()[0].message == "Enter description for schema 'Pet'"
        fix.set_input(["  A pet.  "])
        assert fix.describe_change() == ("", "A pet.")
        fix.apply_node(root)
        assert _load(root)["Pet"]["description"] == "A pet."

    def test_add_description_rejects_blank(self) -> None:
        fix = AddDescriptionFix(yml.compose("a: 1\n"), "thing")
        with pytest.raises(FixUsageError, match="must not be empty"):
            fix.set_input(["   "])

    def test_integer_limits(self) -> None:
        root = yml.compose("type: integer\n")
        fix = SetIntegerLimitsFix(root)
        fix.set_input(["-5", "100"])
        fix.apply_node(root)
        assert _load(root) == {"type": "integer", "minimum": -5, "maximum": 100}

    def test_integer_limits_hook_without_answers(self) -> None:
        root = yml.compose("type: integer\n")
        fix = SetIntegerLimitsFix(root)
        with pytest.raises(FixUsageError, match="have not been set"):
            fix._apply_node(root)
        assert _load(root) == {"type": "integer"}

    def test_integer_format(self) -> None:
        root = yml.compose("type: integer\n")
        fix = SetIntegerFormatFix(root)
        fix.set_input(["int64"])
        fix.apply_node(root)
        assert _load(root)["format"] == "int64"

    def test_add_server(self) -> None:
        document = Document.from_text("openapi: 3.1.0\n")
        fix = AddServerFix()
        fix.set_input(["https://api.example.com"])
        fix.apply(document)
        fix.apply(document)
        assert _load(document.root)["servers"] == [{"url": "https://api.example.com"}]

    @pytest.mark.parametrize("url", ["", "not a url", "example.com"])
    def test_add_server_rejects_invalid_urls(self, url: str) -> None:
        with pytest.raises(FixUsageError, match="not a valid server URL"):
            AddServerFix().set_input([url])

    def test_add_server_accepts_relative_path(self) -> None:
        fix = AddServerFix()
        fix.set_input(["/v1"])
        assert fix.state is FixState.READY
