"""
Context: A named, typed infrastructure object (server, platform, site).

This module provides:

- Context: Base class owning a validated config and lazy references
- ContextTypeRegistry: Registry mapping type identifiers to Context variants
- register_context: Class decorator registering a variant

A context's references to other contexts (a platform's ``web_server``, a
site's ``platform``) are stored as names and resolved through the registry
on first access, so records can be loaded in any order. Resolution failures
are reported at access time, never at construction time.

Verification lifecycle::

    UNVERIFIED ──verify()──▶ VERIFYING ──▶ VERIFIED
                                       └──▶ FAILED ──verify()──▶ VERIFYING ...

Changing the config with :meth:`Context.update_config` resets the state to
``UNVERIFIED``.
"""

from __future__ import annotations

import copy
import logging
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Any, Callable, ClassVar

from provision.errors import (
    ContextNotFoundError,
    ContextReferenceError,
    ProvisionError,
    ReferenceNotFoundError,
    ReferenceTypeError,
    UnknownContextTypeError,
)
from provision.schema import ConfigSchema, SchemaNotice
from provision.store.base import make_record_id
from provision.verification import (
    LocalVerifier,
    VerificationFailure,
    VerificationResult,
    VerificationState,
    Verifier,
)

if TYPE_CHECKING:
    from provision.registry import ContextRegistry

logger = logging.getLogger(__name__)


class ContextTypeRegistry:
    """
    Registry mapping context type identifiers to variant classes.

    Mirrors :class:`ServiceRegistry`: built-in variants are imported on
    first lookup, and the ``provision.contexts`` entry-point group is
    loaded once so other packages can add context kinds.
    """

    _types: dict[str, type[Context]] = {}
    _loaded: bool = False

    @classmethod
    def register(cls, context_type: str, context_class: type[Context]) -> None:
        """Register *context_class* for *context_type*."""
        existing = cls._types.get(context_type)
        if existing is not None and existing is not context_class:
            logger.warning(
                "Context type %r re-registered: %s replaces %s",
                context_type,
                context_class.__name__,
                existing.__name__,
            )
        cls._types[context_type] = context_class

    @classmethod
    def _ensure_loaded(cls) -> None:
        if cls._loaded:
            return
        cls._loaded = True

        import provision.context.platform  # noqa: F401
        import provision.context.server  # noqa: F401
        import provision.context.site  # noqa: F401

        for ep in entry_points(group="provision.contexts"):
            try:
                ep.load()
            except Exception:  # noqa: BLE001
                logger.warning("Failed to load context entry point %r", ep.name, exc_info=True)

    @classmethod
    def get(cls, context_type: str) -> type[Context] | None:
        """Get the variant class for *context_type*, or ``None``."""
        cls._ensure_loaded()
        return cls._types.get(context_type)

    @classmethod
    def types(cls) -> list[str]:
        """List all registered context types."""
        cls._ensure_loaded()
        return sorted(cls._types)


def register_context(context_type: str) -> Callable[[type[Context]], type[Context]]:
    """Class decorator registering a :class:`Context` variant under *context_type*."""

    def decorator(context_class: type[Context]) -> type[Context]:
        context_class.type = context_type
        ContextTypeRegistry.register(context_type, context_class)
        return context_class

    return decorator


class Context:
    """
    Base class for context variants.

    Subclasses declare:

    - ``schema``: the :class:`ConfigSchema` for their config; top-level
      :class:`~provision.schema.Reference` fields become references
    - ``requirements``: service types this kind of context needs
    - ``inherits_requirements_from``: context types whose requirements
      are added to this type's own
    - ``reference_services``: reference field → service type the referenced
      context must provide for verification to pass
    """

    type: ClassVar[str] = ""
    role: ClassVar[str] = "context"
    schema: ClassVar[ConfigSchema] = ConfigSchema()
    requirements: ClassVar[tuple[str, ...]] = ()
    inherits_requirements_from: ClassVar[tuple[str, ...]] = ()
    reference_services: ClassVar[dict[str, str]] = {}

    def __init__(
        self,
        name: str,
        config: dict[str, Any] | None = None,
        registry: ContextRegistry | None = None,
    ) -> None:
        """
        Construct and validate a context.

        Args:
            name: Unique context name.
            config: Raw config as read from the store.
            registry: Registry used to resolve references on access.

        Raises:
            InvalidRecordIdError: If *name* cannot form a record id.
            SchemaValidationError: If *config* fails validation (including
                :class:`MissingReferenceError` for absent required references).
            UnregisteredServiceTypeError: If a declared service is unknown.
        """
        make_record_id(self.type, name)
        self.name = name
        self._registry = registry
        self.state = VerificationState.UNVERIFIED
        self._apply_config(config)

    # ------------------------------------------------------------------
    # Type dispatch
    # ------------------------------------------------------------------

    @staticmethod
    def class_for(context_type: str) -> type[Context]:
        """
        Map a type identifier to the variant class to instantiate.

        Raises:
            UnknownContextTypeError: If no variant is registered.
        """
        context_class = ContextTypeRegistry.get(context_type)
        if context_class is None:
            raise UnknownContextTypeError(context_type, ContextTypeRegistry.types())
        return context_class

    @classmethod
    def service_requirements(cls) -> tuple[str, ...]:
        """Service types required to provision a context of this type."""
        required: list[str] = []
        for context_type in cls.inherits_requirements_from:
            required.extend(Context.class_for(context_type).service_requirements())
        required.extend(cls.requirements)
        return tuple(dict.fromkeys(required))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def prepare_config(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Hook for variants to fill name-dependent defaults before validation."""
        return raw

    def _apply_config(self, raw: dict[str, Any] | None) -> None:
        outcome = self.schema.validate(self.prepare_config(dict(raw or {})))
        self.config: dict[str, Any] = outcome.config
        self.notices: list[SchemaNotice] = list(outcome.notices)

        self.references: dict[str, str] = {}
        self._reference_types: dict[str, str] = {}
        for node in self.schema.references():
            self._reference_types[node.name] = node.context_type
            if node.name in self.config:
                self.references[node.name] = self.config[node.name]
        self._resolved: dict[str, Context] = {}

        self.build()

        for notice in self.notices:
            logger.info("Context %r: %s", self.name, notice)

    def build(self) -> None:
        """Hook for variants to build owned objects from the validated config."""

    def update_config(self, config: dict[str, Any]) -> None:
        """
        Replace the config, revalidating it and resetting verification state.

        On validation failure the previous config and state are kept.
        """
        previous = dict(self.__dict__)
        try:
            self._apply_config(config)
        except Exception:
            self.__dict__.clear()
            self.__dict__.update(previous)
            raise
        self.state = VerificationState.UNVERIFIED

    @property
    def record_id(self) -> str:
        """Store identifier, ``{type}.{name}``."""
        return make_record_id(self.type, self.name)

    def to_record(self) -> dict[str, Any]:
        """Normalized config suitable for writing to the store."""
        return copy.deepcopy(self.config)

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def reference(self, field: str) -> Context:
        """
        Resolve the reference stored in *field*.

        Raises:
            ProvisionError: If this context has no such reference.
            ReferenceNotFoundError: If the named context does not exist.
            ReferenceTypeError: If it exists with the wrong type.
        """
        if field in self._resolved:
            return self._resolved[field]
        if field not in self.references:
            raise ProvisionError(f"Context {self.name!r} has no reference {field!r}")

        target = self.references[field]
        if self._registry is None:
            raise ReferenceNotFoundError(self.name, field, target)
        try:
            context = self._registry.get_by_name(target)
        except ContextNotFoundError:
            raise ReferenceNotFoundError(self.name, field, target) from None

        expected = self._reference_types[field]
        if context.type != expected:
            raise ReferenceTypeError(self.name, field, target, expected, context.type)

        self._resolved[field] = context
        return context

    def provides(self, service_type: str) -> bool:
        """True if this context owns a service of *service_type*."""
        return False

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self, verifier: Verifier | None = None) -> VerificationResult:
        """
        Check that the described infrastructure matches the config.

        Every reference and owned service is checked; all failures are
        collected. The state ends as ``VERIFIED`` or ``FAILED``, never
        ``VERIFYING``.
        """
        verifier = verifier or LocalVerifier()
        self.state = VerificationState.VERIFYING
        result = VerificationResult(self.name, self.type)
        try:
            result.extend(self.collect_failures(verifier))
        except Exception as e:  # noqa: BLE001
            logger.debug("Verification of %r raised", self.name, exc_info=True)
            result.add("context", "verify", f"{type(e).__name__}: {e}")
        finally:
            self.state = result.state
        if result.ok:
            logger.info("Verified %s %r", self.type, self.name)
        else:
            logger.warning(
                "Verification of %s %r failed with %d problem(s)",
                self.type,
                self.name,
                len(result.failures),
            )
        return result

    def collect_failures(self, verifier: Verifier) -> list[VerificationFailure]:
        """Variant-specific sub-checks; the base checks references."""
        return self.verify_references()

    def verify_references(self) -> list[VerificationFailure]:
        failures = []
        for field, target in self.references.items():
            subject = f"reference:{field}"
            try:
                context = self.reference(field)
            except ContextReferenceError as e:
                failures.append(VerificationFailure(subject, f"resolve {target!r}", str(e)))
                continue
            service_type = self.reference_services.get(field)
            if service_type and not context.provides(service_type):
                failures.append(
                    VerificationFailure(
                        subject,
                        f"{target!r} provides {service_type}",
                        f"{context.type} {target!r} has no {service_type!r} service",
                    )
                )
        return failures

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, state={self.state.value!r})"
