"""
ConfigSchema: Declarative field rules for context and service config.

A schema is a tree of nodes:

- Scalar: a single value of a given kind (string, integer, number, boolean, any)
- Enum: a scalar restricted to a fixed set of values
- Reference: the name of another context of an expected type
- Mapping: a fixed set of named children
- MappingOf: arbitrary keys, each validated against one item node
- Sequence: a list of items validated against one item node

Validation rules:

- Structural and total: every supplied field must resolve to a node. Unknown
  fields are stripped and reported as :class:`SchemaNotice` entries.
- Missing fields are filled from their default when one is declared;
  otherwise a required field fails validation. ``None`` counts as missing.
- First-error policy: children are walked depth-first in declaration order
  and the first failure is raised as :class:`SchemaValidationError`.
- Pure: the input mapping is never mutated and defaults are deep-copied.

Example:
    >>> schema = ConfigSchema(
    ...     Scalar("root", required=True),
    ...     Reference("web_server", "server", required=True),
    ...     Scalar("make_working_copy", kind="boolean", default=False),
    ... )
    >>> schema.validate({"root": "/var/www", "web_server": "alpha"}).config
    {'root': '/var/www', 'web_server': 'alpha', 'make_working_copy': False}
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, ClassVar

from provision.errors import MissingReferenceError, SchemaValidationError

_MISSING: Any = object()


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


@dataclass(frozen=True)
class SchemaNotice:
    """A non-fatal remark produced during validation (e.g. a stripped field)."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Result of a successful validation.

    Attributes:
        config: Normalized configuration (defaults applied, unknown fields
            stripped).
        notices: Non-fatal notices recorded while normalizing.
    """

    config: dict[str, Any]
    notices: list[SchemaNotice] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class Node:
    """Base class for schema nodes."""

    kind: ClassVar[str] = "node"

    def __init__(
        self,
        name: str,
        *,
        required: bool = False,
        default: Any = _MISSING,
        description: str = "",
    ) -> None:
        self.name = name
        self.required = required
        self.default = default
        self.description = description

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def expected(self) -> str:
        """Describe the accepted values, for error messages."""
        return self.kind

    def resolve_missing(self, path: str) -> Any:
        """Return the value to use when the field is absent, or ``_MISSING``."""
        if self.has_default:
            return copy.deepcopy(self.default)
        if self.required:
            raise SchemaValidationError(path, self.expected(), "missing required field")
        return _MISSING

    def check(self, value: Any, path: str, notices: list[SchemaNotice]) -> Any:
        """Validate *value* and return its normalized form."""
        raise NotImplementedError

    def _fail(self, path: str, value: Any) -> SchemaValidationError:
        return SchemaValidationError(
            path, self.expected(), f"invalid value {value!r} ({type(value).__name__})"
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Scalar(Node):
    """A single value of a given kind."""

    kind = "scalar"

    _KINDS: ClassVar[dict[str, tuple[type, ...]]] = {
        "string": (str,),
        "integer": (int,),
        "number": (int, float),
        "boolean": (bool,),
        "any": (str, int, float, bool),
    }

    def __init__(self, name: str, *, kind: str = "string", **kwargs: Any) -> None:
        if kind not in self._KINDS:
            raise ValueError(
                f"Unknown scalar kind {kind!r}. Available: {sorted(self._KINDS)}"
            )
        super().__init__(name, **kwargs)
        self.value_kind = kind

    def expected(self) -> str:
        return self.value_kind

    def check(self, value: Any, path: str, notices: list[SchemaNotice]) -> Any:
        accepted = self._KINDS[self.value_kind]
        # bool is an int subclass; only boolean/any accept it
        if isinstance(value, bool) and bool not in accepted:
            raise self._fail(path, value)
        if not isinstance(value, accepted):
            raise self._fail(path, value)
        return value


class Enum(Node):
    """A scalar restricted to a fixed set of values."""

    kind = "enum"

    def __init__(self, name: str, values: list[Any] | tuple[Any, ...], **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self.values = tuple(values)

    def expected(self) -> str:
        return "one of " + ", ".join(repr(v) for v in self.values)

    def check(self, value: Any, path: str, notices: list[SchemaNotice]) -> Any:
        if isinstance(value, (dict, list)) or value not in self.values:
            raise self._fail(path, value)
        return value


class Reference(Scalar):
    """
    The name of another context.

    The value is stored as a plain string; resolution happens later through
    the registry. A missing required reference raises
    :class:`MissingReferenceError` rather than a generic missing-field error.
    """

    kind = "reference"

    def __init__(self, name: str, context_type: str, **kwargs: Any) -> None:
        super().__init__(name, kind="string", **kwargs)
        self.context_type = context_type

    def expected(self) -> str:
        return f"name of a {self.context_type} context"

    def resolve_missing(self, path: str) -> Any:
        if self.required and not self.has_default:
            raise MissingReferenceError(path, self.context_type)
        return super().resolve_missing(path)

    def check(self, value: Any, path: str, notices: list[SchemaNotice]) -> Any:
        value = super().check(value, path, notices)
        if not value:
            raise self._fail(path, value)
        return value


class Mapping(Node):
    """A mapping with a fixed set of named children."""

    kind = "mapping"

    def __init__(
        self,
        name: str,
        children: list[Node] | tuple[Node, ...] = (),
        *,
        allow_unknown: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(name, **kwargs)
        self.children = list(children)
        self.allow_unknown = allow_unknown
        names = [child.name for child in self.children]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate child names in mapping {name!r}: {names}")

    def child(self, name: str) -> Node | None:
        for node in self.children:
            if node.name == name:
                return node
        return None

    def check(self, value: Any, path: str, notices: list[SchemaNotice]) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise self._fail(path, value)

        result: dict[str, Any] = {}
        for node in self.children:
            node_path = _join(path, node.name)
            raw = value.get(node.name)
            if raw is None:
                filled = node.resolve_missing(node_path)
                if filled is not _MISSING:
                    result[node.name] = filled
                continue
            result[node.name] = node.check(raw, node_path, notices)

        known = {node.name for node in self.children}
        for key, raw in value.items():
            if key in known:
                continue
            if self.allow_unknown:
                result[key] = copy.deepcopy(raw)
            else:
                notices.append(
                    SchemaNotice(_join(path, str(key)), "unknown field stripped")
                )
        return result


class MappingOf(Node):
    """A mapping with arbitrary string keys, each validated against *item*."""

    kind = "mapping"

    def __init__(self, name: str, item: Node, **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self.item = item

    def expected(self) -> str:
        return f"mapping of {self.item.expected()}"

    def check(self, value: Any, path: str, notices: list[SchemaNotice]) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise self._fail(path, value)
        result: dict[str, Any] = {}
        for key, raw in value.items():
            key_path = _join(path, str(key))
            if not isinstance(key, str):
                raise SchemaValidationError(key_path, "string key", f"invalid key {key!r}")
            if raw is None:
                filled = self.item.resolve_missing(key_path)
                if filled is not _MISSING:
                    result[key] = filled
                continue
            result[key] = self.item.check(raw, key_path, notices)
        return result


class Sequence(Node):
    """A list of items validated against *item*."""

    kind = "sequence"

    def __init__(self, name: str, item: Node, **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self.item = item

    def expected(self) -> str:
        return f"list of {self.item.expected()}"

    def check(self, value: Any, path: str, notices: list[SchemaNotice]) -> list[Any]:
        if not isinstance(value, (list, tuple)):
            raise self._fail(path, value)
        return [
            self.item.check(raw, f"{path}[{index}]", notices)
            for index, raw in enumerate(value)
        ]


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class ConfigSchema:
    """
    Root of a schema tree.

    Wraps a top-level :class:`Mapping` and exposes the validation entry
    point used by contexts and services.
    """

    def __init__(self, *children: Node, allow_unknown: bool = False) -> None:
        self.root = Mapping("", children, allow_unknown=allow_unknown)

    @property
    def fields(self) -> list[Node]:
        return list(self.root.children)

    def field(self, name: str) -> Node | None:
        """Return the top-level node called *name*, if any."""
        return self.root.child(name)

    def extend(self, *children: Node) -> ConfigSchema:
        """
        Return a new schema with *children* appended.

        A child with the same name as an existing field replaces it in place.
        """
        replacements = {child.name: child for child in children}
        merged = [replacements.pop(node.name, node) for node in self.root.children]
        merged.extend(child for child in children if child.name in replacements)
        return ConfigSchema(*merged, allow_unknown=self.root.allow_unknown)

    def references(self) -> list[Reference]:
        """Top-level reference fields, in declaration order."""
        return [node for node in self.root.children if isinstance(node, Reference)]

    def validate(
        self, raw: dict[str, Any] | None, path: str = ""
    ) -> ValidationOutcome:
        """
        Validate *raw* and return the normalized configuration.

        Args:
            raw: Field-keyed mapping as parsed from a persisted record.
                ``None`` is treated as an empty mapping.
            path: Dotted prefix for field paths in errors and notices, used
                when this schema validates a section of a larger record.

        Returns:
            A :class:`ValidationOutcome` with defaults applied and unknown
            fields stripped.

        Raises:
            SchemaValidationError: For the first invalid or missing field.
        """
        notices: list[SchemaNotice] = []
        config = self.root.check({} if raw is None else raw, path, notices)
        return ValidationOutcome(config=config, notices=notices)
