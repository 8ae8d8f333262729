"""
Tests for ConfigSchema validation.

Tests:
- Defaults are applied (and deep-copied)
- Unknown fields are stripped and reported as notices
- Required fields and references raise with the offending path
- Scalar kinds (bool is not an integer)
- Nested paths for MappingOf and Sequence
- First-error policy is deterministic
- extend() replaces and appends fields
"""

from __future__ import annotations

import pytest

from provision.errors import MissingReferenceError, SchemaValidationError
from provision.schema import (
    ConfigSchema,
    Enum,
    Mapping,
    MappingOf,
    Reference,
    Scalar,
    Sequence,
)

PLATFORM_SCHEMA = ConfigSchema(
    Scalar("root", required=True),
    Reference("web_server", "server", required=True),
    Scalar("makefile"),
    Scalar("make_working_copy", kind="boolean", default=False),
)


class TestDefaults:
    """Tests for default handling."""

    def test_defaults_applied(self) -> None:
        """Absent optional fields take their default."""
        outcome = PLATFORM_SCHEMA.validate({"root": "/srv/d10", "web_server": "alpha"})
        assert outcome.config == {
            "root": "/srv/d10",
            "web_server": "alpha",
            "make_working_copy": False,
        }
        assert outcome.notices == []

    def test_optional_without_default_omitted(self) -> None:
        """Optional fields without a default are left out."""
        outcome = PLATFORM_SCHEMA.validate({"root": "/srv/d10", "web_server": "alpha"})
        assert "makefile" not in outcome.config

    def test_none_counts_as_missing(self) -> None:
        """An explicit None is treated like an absent field."""
        outcome = PLATFORM_SCHEMA.validate(
            {"root": "/srv/d10", "web_server": "alpha", "make_working_copy": None}
        )
        assert outcome.config["make_working_copy"] is False

    def test_mutable_default_is_copied(self) -> None:
        """Each validation gets its own copy of a mutable default."""
        schema = ConfigSchema(Sequence("aliases", Scalar("alias"), default=[]))
        first = schema.validate({}).config
        first["aliases"].append("www.example.com")
        assert schema.validate({}).config["aliases"] == []

    def test_input_not_mutated(self) -> None:
        raw = {"root": "/srv/d10", "web_server": "alpha", "extra": 1}
        PLATFORM_SCHEMA.validate(raw)
        assert raw == {"root": "/srv/d10", "web_server": "alpha", "extra": 1}


class TestUnknownFields:
    """Tests for unknown field handling."""

    def test_unknown_field_stripped_with_notice(self) -> None:
        outcome = PLATFORM_SCHEMA.validate(
            {"root": "/srv/d10", "web_server": "alpha", "colour": "blue"}
        )
        assert "colour" not in outcome.config
        assert len(outcome.notices) == 1
        assert outcome.notices[0].path == "colour"
        assert "stripped" in outcome.notices[0].message

    def test_notice_path_uses_prefix(self) -> None:
        schema = ConfigSchema(Scalar("type", required=True))
        outcome = schema.validate({"type": "apache", "bogus": 1}, path="services.http")
        assert str(outcome.notices[0]) == "services.http.bogus: unknown field stripped"

    def test_allow_unknown_keeps_fields(self) -> None:
        schema = ConfigSchema(Scalar("type", required=True), allow_unknown=True)
        outcome = schema.validate({"type": "apache", "http_port": 8080})
        assert outcome.config == {"type": "apache", "http_port": 8080}
        assert outcome.notices == []


class TestRequired:
    """Tests for missing required fields and references."""

    def test_missing_required_field(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            PLATFORM_SCHEMA.validate({"web_server": "alpha"})
        assert exc_info.value.path == "root"
        assert "missing required field" in str(exc_info.value)

    def test_missing_reference_names_field(self) -> None:
        """A missing required reference raises MissingReferenceError."""
        with pytest.raises(MissingReferenceError) as exc_info:
            PLATFORM_SCHEMA.validate({"root": "/srv/d10"})
        assert exc_info.value.path == "web_server"
        assert exc_info.value.context_type == "server"
        assert "web_server" in str(exc_info.value)

    def test_empty_reference_rejected(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            PLATFORM_SCHEMA.validate({"root": "/srv/d10", "web_server": ""})
        assert exc_info.value.path == "web_server"

    def test_none_raw_is_empty_mapping(self) -> None:
        with pytest.raises(SchemaValidationError):
            PLATFORM_SCHEMA.validate(None)
        assert ConfigSchema(Scalar("a", default=1)).validate(None).config == {"a": 1}

    def test_first_error_is_deterministic(self) -> None:
        """With several problems, the first field in declaration order is reported."""
        raw = {"make_working_copy": "yes"}
        errors = []
        for _ in range(3):
            with pytest.raises(SchemaValidationError) as exc_info:
                PLATFORM_SCHEMA.validate(raw)
            errors.append(exc_info.value.path)
        assert errors == ["root", "root", "root"]


class TestScalarKinds:
    """Tests for scalar kind checking."""

    @pytest.mark.parametrize(
        "kind,value",
        [
            ("string", "x"),
            ("integer", 3),
            ("number", 3),
            ("number", 2.5),
            ("boolean", True),
            ("any", "x"),
            ("any", False),
        ],
    )
    def test_accepted(self, kind: str, value: object) -> None:
        schema = ConfigSchema(Scalar("v", kind=kind))
        assert schema.validate({"v": value}).config == {"v": value}

    @pytest.mark.parametrize(
        "kind,value",
        [
            ("string", 3),
            ("integer", "80"),
            ("integer", True),
            ("integer", 2.5),
            ("number", False),
            ("boolean", 1),
            ("any", {"nested": 1}),
        ],
    )
    def test_rejected(self, kind: str, value: object) -> None:
        schema = ConfigSchema(Scalar("v", kind=kind))
        with pytest.raises(SchemaValidationError) as exc_info:
            schema.validate({"v": value})
        assert exc_info.value.expected == kind

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError, match="Unknown scalar kind"):
            Scalar("v", kind="date")

    def test_enum(self) -> None:
        schema = ConfigSchema(Enum("profile", ["standard", "minimal"], default="standard"))
        assert schema.validate({}).config == {"profile": "standard"}
        with pytest.raises(SchemaValidationError, match="one of 'standard', 'minimal'"):
            schema.validate({"profile": "testing"})


class TestNesting:
    """Tests for nested nodes and their error paths."""

    SCHEMA = ConfigSchema(
        MappingOf(
            "services",
            Mapping("service", [Scalar("type", required=True)], allow_unknown=True),
            default={},
        ),
        Sequence("aliases", Scalar("alias"), default=[]),
    )

    def test_mapping_of_path(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            self.SCHEMA.validate({"services": {"http": {"http_port": 80}}})
        assert exc_info.value.path == "services.http.type"

    def test_mapping_of_rejects_non_mapping(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            self.SCHEMA.validate({"services": ["http"]})
        assert exc_info.value.path == "services"

    def test_sequence_index_path(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            self.SCHEMA.validate({"aliases": ["a.example.com", 7]})
        assert exc_info.value.path == "aliases[1]"

    def test_nested_values_normalized(self) -> None:
        outcome = self.SCHEMA.validate(
            {"services": {"db": {"type": "mysql", "db_port": 3307}}, "aliases": ["x"]}
        )
        assert outcome.config == {
            "services": {"db": {"type": "mysql", "db_port": 3307}},
            "aliases": ["x"],
        }

    def test_duplicate_child_names(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            Mapping("m", [Scalar("a"), Scalar("a")])


class TestExtend:
    """Tests for ConfigSchema.extend()."""

    def test_replaces_in_place_and_appends(self) -> None:
        base = ConfigSchema(Scalar("type", required=True), Scalar("port", kind="integer"))
        extended = base.extend(
            Scalar("port", kind="integer", default=3306),
            Scalar("user", default="root"),
        )
        assert [node.name for node in extended.fields] == ["type", "port", "user"]
        assert extended.validate({"type": "mysql"}).config == {
            "type": "mysql",
            "port": 3306,
            "user": "root",
        }

    def test_base_unchanged(self) -> None:
        base = ConfigSchema(Scalar("port", kind="integer"))
        base.extend(Scalar("port", kind="integer", default=1))
        assert base.validate({}).config == {}

    def test_references(self) -> None:
        assert [node.name for node in PLATFORM_SCHEMA.references()] == ["web_server"]
        assert PLATFORM_SCHEMA.field("root") is not None
        assert PLATFORM_SCHEMA.field("nope") is None
