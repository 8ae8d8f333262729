"""
Exception hierarchy for provision.

All errors raised by the core derive from :class:`ProvisionError` so callers
(the CLI in particular) can report them without catching bare ``Exception``.

- ConfigurationError: unknown types, malformed or missing fields
- ContextReferenceError: a named reference cannot be resolved
- ContextNotFoundError: registry lookup by name failed
- StoreError: the configuration store could not be read or written
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for all provision errors."""


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class ConfigurationError(ProvisionError):
    """A context or service configuration is invalid."""


class UnknownContextTypeError(ConfigurationError):
    """No context variant is registered for a type identifier."""

    def __init__(self, context_type: str, available: list[str]) -> None:
        self.context_type = context_type
        self.available = available
        registered = ", ".join(available) or "(none)"
        super().__init__(
            f"Unknown context type: {context_type!r}. Registered types: {registered}"
        )


class UnregisteredServiceTypeError(ConfigurationError):
    """No service class is registered for a (service_type, implementation) pair."""

    def __init__(
        self,
        service_type: str,
        implementation: str | None,
        available: list[tuple[str, str]],
    ) -> None:
        self.service_type = service_type
        self.implementation = implementation
        self.available = available
        registered = ", ".join(f"{s}/{i}" for s, i in available) or "(none)"
        super().__init__(
            f"Unregistered service type: {service_type!r} "
            f"(implementation {implementation!r}). Registered: {registered}"
        )


class SchemaValidationError(ConfigurationError):
    """
    A configuration failed schema validation.

    Attributes:
        path: Dotted path of the offending field (e.g. ``"services.http.type"``).
        expected: Human-readable description of what was expected.
        reason: Short description of what went wrong.
    """

    def __init__(self, path: str, expected: str, reason: str) -> None:
        self.path = path
        self.expected = expected
        self.reason = reason
        super().__init__(f"{path or '<root>'}: {reason} (expected {expected})")


class MissingReferenceError(SchemaValidationError):
    """A required reference to another context is absent from the config."""

    def __init__(self, path: str, context_type: str) -> None:
        self.context_type = context_type
        super().__init__(
            path,
            f"name of a {context_type} context",
            f"missing required reference {path!r}",
        )


class InvalidRecordIdError(ConfigurationError):
    """A record identifier does not follow the ``{type}.{name}`` convention."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(
            f"Invalid record id {record_id!r}: expected '{{type}}.{{name}}'"
        )


# ---------------------------------------------------------------------------
# Reference errors
# ---------------------------------------------------------------------------


class ContextReferenceError(ProvisionError):
    """A reference from one context to another cannot be used."""

    def __init__(self, referencing: str, field: str, target: str, message: str) -> None:
        self.referencing = referencing
        self.field = field
        self.target = target
        super().__init__(message)


class ReferenceNotFoundError(ContextReferenceError):
    """The referenced context does not exist in the registry."""

    def __init__(self, referencing: str, field: str, target: str) -> None:
        super().__init__(
            referencing,
            field,
            target,
            f"Context {referencing!r} references {target!r} via {field!r}, "
            f"but no context named {target!r} exists",
        )


class ReferenceTypeError(ContextReferenceError):
    """The referenced context exists but has the wrong type."""

    def __init__(
        self,
        referencing: str,
        field: str,
        target: str,
        expected_type: str,
        actual_type: str,
    ) -> None:
        self.expected_type = expected_type
        self.actual_type = actual_type
        super().__init__(
            referencing,
            field,
            target,
            f"Context {referencing!r} expects {field!r} to be a {expected_type} "
            f"context, but {target!r} is a {actual_type}",
        )


# ---------------------------------------------------------------------------
# Lookup and storage errors
# ---------------------------------------------------------------------------


class ContextNotFoundError(ProvisionError, KeyError):
    """No context with the requested name was loaded."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available or []
        hint = ", ".join(sorted(self.available)) or "(none)"
        super().__init__(f"Context not found with name: {name!r}. Available: {hint}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class StoreError(ProvisionError):
    """The configuration store could not be read or written."""
