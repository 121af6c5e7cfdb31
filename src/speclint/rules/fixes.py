"""Fixes shared by the built-in rules."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlparse

import yaml

from speclint.document import yml
from speclint.linter.fix import Fix, FixUsageError, Prompt, PromptKind

if TYPE_CHECKING:
    from speclint.document.model import Document

RFC8725_SUFFIX = " This scheme follows RFC8725 best practices."
RETRY_AFTER_DESCRIPTION = "Number of seconds to wait before retrying"


def has_header(headers: yaml.Node | None, name: str) -> bool:
    """Case-insensitive header lookup in a ``headers`` mapping."""
    wanted = name.lower()
    return any(key.lower() == wanted for key, _key_node, _value in yml.iter_map(headers))


# ---------------------------------------------------------------------------
# Automatic fixes
# ---------------------------------------------------------------------------


class AddErrorResponseFix(Fix):
    """Add ``{status}: {description, content}`` to a responses mapping."""

    def __init__(self, responses: yaml.MappingNode, status: str, description: str) -> None:
        super().__init__()
        self._responses = responses
        self._status = status
        self._label = description

    def description(self) -> str:
        return f"Add {self._status} response: {self._label}"

    def describe_change(self) -> tuple[str, str]:
        if yml.has_key(self._responses, self._status):
            return "", ""
        return "", f"{self._status}: {self._label}"

    def _targets(self) -> list[yaml.Node]:
        return [self._responses]

    def _apply_node(self, root: yaml.Node) -> None:
        if yml.has_key(self._responses, self._status):
            return
        schema = yml.create_map_node([("type", yml.create_string_node("object"))])
        content = yml.create_map_node(
            [("application/json", yml.create_map_node([("schema", schema)]))]
        )
        response = yml.create_map_node(
            [("description", yml.create_string_node(self._label)), ("content", content)]
        )
        yml.set_map_element(self._responses, self._status, response)


class AddRetryAfterHeaderFix(Fix):
    def __init__(self, response: yaml.MappingNode) -> None:
        super().__init__()
        self._response = response

    def description(self) -> str:
        return "Add Retry-After header to 429 response"

    def describe_change(self) -> tuple[str, str]:
        if has_header(yml.get_value(self._response, "headers"), "Retry-After"):
            return "", ""
        return "", "headers: Retry-After"

    def _targets(self) -> list[yaml.Node]:
        return [self._response]

    def _apply_node(self, root: yaml.Node) -> None:
        headers = yml.ensure_map_element(self._response, "headers")
        if has_header(headers, "Retry-After"):
            return
        header = yml.create_map_node(
            [
                ("description", yml.create_string_node(RETRY_AFTER_DESCRIPTION)),
                ("schema", yml.create_map_node([("type", yml.create_string_node("integer"))])),
            ]
        )
        yml.set_map_element(headers, "Retry-After", header)


class AppendRFC8725Fix(Fix):
    """Mention RFC8725 in a security scheme description, creating it if absent."""

    def __init__(self, scheme: yaml.MappingNode) -> None:
        super().__init__()
        self._scheme = scheme

    def description(self) -> str:
        return "Add RFC8725 mention to security scheme description"

    def _updated(self) -> tuple[str, str]:
        current = yml.get_scalar(self._scheme, "description") or ""
        if "RFC8725" in current:
            return current, current
        return current, (current + RFC8725_SUFFIX).strip()

    def describe_change(self) -> tuple[str, str]:
        before, after = self._updated()
        return ("", "") if before == after else (before, after)

    def _targets(self) -> list[yaml.Node]:
        return [self._scheme]

    def _apply_node(self, root: yaml.Node) -> None:
        before, after = self._updated()
        if before == after:
            return
        existing = yml.get_value(self._scheme, "description")
        if isinstance(existing, yaml.ScalarNode):
            existing.value = after
        else:
            yml.set_map_element(self._scheme, "description", yml.create_string_node(after))


class SetAdditionalPropertiesFalseFix(Fix):
    def __init__(self, schema: yaml.MappingNode) -> None:
        super().__init__()
        self._schema = schema

    def description(self) -> str:
        return "Set additionalProperties to false"

    def describe_change(self) -> tuple[str, str]:
        current = yml.get_value(self._schema, "additionalProperties")
        if yml.is_false(current):
            return "", ""
        return "additionalProperties: true", "additionalProperties: false"

    def _targets(self) -> list[yaml.Node]:
        return [self._schema]

    def _apply_node(self, root: yaml.Node) -> None:
        current = yml.get_value(self._schema, "additionalProperties")
        if yml.is_false(current):
            return
        yml.set_map_element(self._schema, "additionalProperties", yml.create_bool_node(False))


class RemoveDuplicateEnumFix(Fix):
    """Drop the repeated entries of an enum sequence, keeping first occurrences."""

    def __init__(self, enum: yaml.SequenceNode, duplicates: list[yaml.Node]) -> None:
        super().__init__()
        self._enum = enum
        self._duplicates = duplicates

    def description(self) -> str:
        return "Remove duplicate enum entries"

    def describe_change(self) -> tuple[str, str]:
        remaining = [n for n in self._duplicates if any(n is item for item in self._enum.value)]
        if not remaining:
            return "", ""
        before = ", ".join(str(item.value) for item in self._enum.value)
        after = ", ".join(
            str(item.value)
            for item in self._enum.value
            if not any(item is n for n in remaining)
        )
        return f"[{before}]", f"[{after}]"

    def _targets(self) -> list[yaml.Node]:
        return [self._enum]

    def _apply_node(self, root: yaml.Node) -> None:
        self._enum.value = [
            item for item in self._enum.value if not any(item is n for n in self._duplicates)
        ]


class RemoveNullableFix(Fix):
    """Replace ``nullable: true`` with a ``type`` list that includes ``null``."""

    def __init__(self, schema: yaml.MappingNode) -> None:
        super().__init__()
        self._schema = schema

    def description(self) -> str:
        return "Replace nullable with type array including null"

    def describe_change(self) -> tuple[str, str]:
        nullable = yml.get_value(self._schema, "nullable")
        if nullable is None:
            return "", ""
        before = f"nullable: {nullable.value}" if isinstance(nullable, yaml.ScalarNode) else "nullable"
        type_node = yml.get_value(self._schema, "type")
        if not yml.is_true(nullable):
            return before, ""
        if isinstance(type_node, yaml.ScalarNode):
            return before, f"type: [{type_node.value}, 'null']"
        return before, "type includes 'null'"

    def _targets(self) -> list[yaml.Node]:
        return [self._schema]

    def _apply_node(self, root: yaml.Node) -> None:
        nullable = yml.get_value(self._schema, "nullable")
        if nullable is None:
            return
        yml.delete_map_element(self._schema, "nullable")
        if not yml.is_true(nullable):
            return

        type_node = yml.get_value(self._schema, "type")
        if isinstance(type_node, yaml.ScalarNode):
            types = yml.create_sequence_node(
                [yml.create_string_node(str(type_node.value)), yml.create_string_node("null")],
                flow_style=True,
            )
            yml.set_map_element(self._schema, "type", types)
        elif isinstance(type_node, yaml.SequenceNode):
            if not any(getattr(item, "value", None) == "null" for item in type_node.value):
                type_node.value.append(yml.create_string_node("null"))
        else:
            yml.set_map_element(self._schema, "type", yml.create_string_node("null"))


class AddPathParameterFix(Fix):
    """Declare a missing path template parameter on an operation."""

    def __init__(
        self, operation: yaml.MappingNode, name: str, schema_type: str, schema_format: str = ""
    ) -> None:
        super().__init__()
        self._operation = operation
        self._name = name
        self._type = schema_type
        self._format = schema_format

    def description(self) -> str:
        return f"Add path parameter `{self._name}`"

    def _declared(self) -> bool:
        parameters = yml.get_value(self._operation, "parameters")
        if not isinstance(parameters, yaml.SequenceNode):
            return False
        return any(
            yml.get_scalar(p, "name") == self._name and yml.get_scalar(p, "in") == "path"
            for p in parameters.value
        )

    def describe_change(self) -> tuple[str, str]:
        if self._declared():
            return "", ""
        return "", f"parameters: {self._name} (in: path, type: {self._type})"

    def _targets(self) -> list[yaml.Node]:
        return [self._operation]

    def _apply_node(self, root: yaml.Node) -> None:
        if self._declared():
            return
        parameters = yml.get_value(self._operation, "parameters")
        if not isinstance(parameters, yaml.SequenceNode):
            parameters = yml.create_sequence_node()
            yml.set_map_element(self._operation, "parameters", parameters)
        schema_pairs: list[tuple[str, yaml.Node]] = [("type", yml.create_string_node(self._type))]
        if self._format:
            schema_pairs.append(("format", yml.create_string_node(self._format)))
        parameters.value.append(
            yml.create_map_node(
                [
                    ("name", yml.create_string_node(self._name)),
                    ("in", yml.create_string_node("path")),
                    ("required", yml.create_bool_node(True)),
                    ("schema", yml.create_map_node(schema_pairs)),
                ]
            )
        )


# ---------------------------------------------------------------------------
# Interactive fixes
# ---------------------------------------------------------------------------


class AddDescriptionFix(Fix):
    interactive = True

    def __init__(self, target: yaml.MappingNode, label: str) -> None:
        super().__init__()
        self._target = target
        self._label = label
        self._text = ""

    def description(self) -> str:
        return f"Add description to {self._label}"

    def prompts(self) -> list[Prompt]:
        return [Prompt(PromptKind.FREE_TEXT, f"Enter description for {self._label}")]

    def _accept(self, answers: list[str]) -> None:
        text = answers[0].strip()
        if not text:
            msg = "description must not be empty"
            raise FixUsageError(msg)
        self._text = text

    def describe_change(self) -> tuple[str, str]:
        if not self._text:
            return "", ""
        return yml.get_scalar(self._target, "description") or "", self._text

    def _targets(self) -> list[yaml.Node]:
        return [self._target]

    def _apply_node(self, root: yaml.Node) -> None:
        yml.set_map_element(self._target, "description", yml.create_string_node(self._text))


class SetIntegerLimitsFix(Fix):
    interactive = True

    def __init__(self, schema: yaml.MappingNode) -> None:
        super().__init__()
        self._schema = schema
        self._minimum: int | None = None
        self._maximum: int | None = None

    def description(self) -> str:
        return "Set minimum and maximum for integer schema"

    def prompts(self) -> list[Prompt]:
        return [
            Prompt(PromptKind.FREE_TEXT, "Minimum value"),
            Prompt(PromptKind.FREE_TEXT, "Maximum value"),
        ]

    def _accept(self, answers: list[str]) -> None:
        values: list[int] = []
        for label, raw in zip(("minimum", "maximum"), answers):
            try:
                values.append(int(raw.strip()))
            except ValueError:
                msg = f"{label} must be an integer, got {raw!r}"
                raise FixUsageError(msg) from None
        if values[0] > values[1]:
            msg = f"minimum {values[0]} is greater than maximum {values[1]}"
            raise FixUsageError(msg)
        self._minimum, self._maximum = values

    def describe_change(self) -> tuple[str, str]:
        if self._minimum is None:
            return "", ""
        return "", f"minimum: {self._minimum}, maximum: {self._maximum}"

    def _targets(self) -> list[yaml.Node]:
        return [self._schema]

    def _apply_node(self, root: yaml.Node) -> None:
        if self._minimum is None or self._maximum is None:
            msg = "minimum and maximum have not been set"
            raise FixUsageError(msg)
        yml.set_map_element(self._schema, "minimum", yml.create_int_node(self._minimum))
        yml.set_map_element(self._schema, "maximum", yml.create_int_node(self._maximum))


class SetIntegerFormatFix(Fix):
    interactive = True

    def __init__(self, schema: yaml.MappingNode) -> None:
        super().__init__()
        self._schema = schema

    def description(self) -> str:
        return "Set format for integer schema"

    def prompts(self) -> list[Prompt]:
        return [Prompt(PromptKind.CHOICE, "Integer format", choices=("int32", "int64"))]

    def describe_change(self) -> tuple[str, str]:
        if not self.answers:
            return "", ""
        return yml.get_scalar(self._schema, "format") or "", f"format: {self.answers[0]}"

    def _targets(self) -> list[yaml.Node]:
        return [self._schema]

    def _apply_node(self, root: yaml.Node) -> None:
        yml.set_map_element(self._schema, "format", yml.create_string_node(self.answers[0]))


class AddServerFix(Fix):
    """Add a server entry through the document model."""

    interactive = True
    mutates_node = False

    def __init__(self) -> None:
        super().__init__()
        self._url = ""

    def description(self) -> str:
        return "Add a server"

    def prompts(self) -> list[Prompt]:
        return [Prompt(PromptKind.FREE_TEXT, "Server URL (e.g. https://api.example.com)")]

    def _accept(self, answers: list[str]) -> None:
        url = answers[0].strip()
        parsed = urlparse(url)
        if not url or not (url.startswith("/") or (parsed.scheme and parsed.netloc)):
            msg = f"{url!r} is not a valid server URL"
            raise FixUsageError(msg)
        self._url = url

    def describe_change(self) -> tuple[str, str]:
        if not self._url:
            return "", ""
        return "", f"servers: - url: {self._url}"

    def _apply(self, document: Document) -> None:
        servers = yml.get_value(document.root, "servers")
        if isinstance(servers, yaml.SequenceNode) and any(
            yml.get_scalar(server, "url") == self._url for server in servers.value
        ):
            return
        document.add_server(self._url)
