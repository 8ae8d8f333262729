"""
ContextRegistry: Discovers persisted records and builds typed contexts.

Records are identified by ``{type}.{name}``. Loading walks the store's
listing, resolves each type through :meth:`Context.class_for`, constructs
the context and indexes it by name.

Policies:

- Names are unique across types. When two records declare the same name,
  the record read last wins and a :class:`LoadWarning` is recorded (and
  logged). The store's listing order defines "last".
- Record files a store lists as skipped (ids that do not split into
  ``{type}.{name}``, such as ``site.example.com``) become load warnings too.
- Construction order does not matter: references resolve lazily through
  :meth:`ContextRegistry.get_by_name`.
- An empty store is an empty registry, not an error.
- Once loaded, the mapping is read-only. Registries are cheap and meant to
  be rebuilt per operation rather than cached.

Example:
    >>> registry = ContextRegistry(FileConfigStore("~/.config/provision/provision"))
    >>> contexts = registry.load_all()
    >>> registry.get_by_name("alpha").services
    {'http': ApacheService(type='http', implementation='apache', provider='alpha')}
"""

from __future__ import annotations

import glob
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterator, Mapping

from provision.context.base import Context
from provision.errors import ConfigurationError, ContextNotFoundError
from provision.store.base import ConfigStore, split_record_id
from provision.store.file import FileConfigStore

if TYPE_CHECKING:
    from provision.config import ProvisionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadWarning:
    """
    A non-fatal problem found while loading the registry.

    Attributes:
        record_id: The record that triggered the warning.
        name: Context name concerned.
        message: Human-readable description.
    """

    record_id: str
    name: str
    message: str

    def __str__(self) -> str:
        return self.message


class ContextRegistry:
    """
    In-memory index of all contexts in a configuration store.

    The registry is loaded on first lookup, or explicitly via
    :meth:`load_all`. Contexts built by the registry resolve their
    references through it.
    """

    def __init__(self, store: ConfigStore) -> None:
        self.store = store
        self._contexts: Mapping[str, Context] = MappingProxyType({})
        self._loaded = False
        self.warnings: list[LoadWarning] = []

    @classmethod
    def from_config(cls, config: ProvisionConfig) -> ContextRegistry:
        """Create a registry over the file store configured in *config*."""
        return cls(FileConfigStore(config.records_path))

    def __repr__(self) -> str:
        state = f"{len(self._contexts)} contexts" if self._loaded else "not loaded"
        return f"ContextRegistry(store={self.store!r}, {state})"

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_all(self, name_filter: str | None = None) -> Mapping[str, Context]:
        """
        Load contexts from the store.

        Without a filter, (re)builds the registry from every record and
        returns the full read-only mapping. Load problems (duplicate names,
        record files the store had to skip) are recorded in :attr:`warnings`.

        With *name_filter*, only records named exactly *name_filter* (glob
        characters are matched literally) are built and returned. The
        registry's own index and :attr:`warnings` describe the full load and
        are left untouched; problems found by a filtered load are only
        logged. References of the returned contexts still resolve through
        the full registry.

        Args:
            name_filter: Optional context name to restrict discovery to.

        Returns:
            Read-only mapping of name to :class:`Context`.

        Raises:
            UnknownContextTypeError: If a record declares an unregistered type.
            ConfigurationError: If a record fails validation.
            StoreError: If the store cannot be read.
        """
        pattern = f"*.{glob.escape(name_filter)}" if name_filter else "*.*"
        contexts, warnings = self._build(self.store.list(pattern))
        if name_filter:
            return MappingProxyType(contexts)

        for record_id in getattr(self.store, "skipped", ()):
            warning = LoadWarning(
                record_id=record_id,
                name=record_id.partition(".")[2],
                message=(
                    f"Record {record_id!r} skipped: ids must be '{{type}}.{{name}}' "
                    "and context names may not contain '.'"
                ),
            )
            logger.warning(warning.message)
            warnings.append(warning)

        self._contexts = MappingProxyType(contexts)
        self.warnings = warnings
        self._loaded = True
        logger.debug("Loaded %d context(s) from %r", len(contexts), self.store)
        return self._contexts

    def _build(self, record_ids: list[str]) -> tuple[dict[str, Context], list[LoadWarning]]:
        contexts: dict[str, Context] = {}
        origins: dict[str, str] = {}
        warnings: list[LoadWarning] = []

        for record_id in record_ids:
            context_type, name = split_record_id(record_id)
            try:
                context_class = Context.class_for(context_type)
                context = context_class(name, self.store.read(record_id), registry=self)
            except ConfigurationError as e:
                logger.error("Cannot load record %r: %s", record_id, e)
                raise

            if name in contexts:
                warning = LoadWarning(
                    record_id=record_id,
                    name=name,
                    message=(
                        f"Context name {name!r} is declared by {origins[name]!r} and "
                        f"{record_id!r}; using {record_id!r} (last read wins)"
                    ),
                )
                logger.warning(warning.message)
                warnings.append(warning)
                del contexts[name]

            contexts[name] = context
            origins[name] = record_id

        return contexts, warnings

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load_all()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def contexts(self) -> Mapping[str, Context]:
        """Read-only mapping of every loaded context by name."""
        self._ensure_loaded()
        return self._contexts

    def __contains__(self, name: object) -> bool:
        return name in self.contexts

    def __iter__(self) -> Iterator[str]:
        return iter(self.contexts)

    def __len__(self) -> int:
        return len(self.contexts)

    def get_by_name(self, name: str) -> Context:
        """
        Return the context called *name*.

        Raises:
            ContextNotFoundError: If no such context was loaded.
        """
        if not name:
            raise ContextNotFoundError(name, list(self.contexts))
        try:
            return self.contexts[name]
        except KeyError:
            raise ContextNotFoundError(name, list(self.contexts)) from None

    def get_all_of_type(self, context_type: str) -> dict[str, Context]:
        """
        Return all contexts of *context_type*, by name.

        Raises:
            UnknownContextTypeError: If *context_type* is not registered.
        """
        Context.class_for(context_type)
        return {
            name: context
            for name, context in self.contexts.items()
            if context.type == context_type
        }

    def server_options(self, service_type: str = "") -> dict[str, str]:
        """
        Servers suitable for an options list.

        Args:
            service_type: Only include servers providing this service type
                (e.g. ``"http"``). Empty includes every server.

        Returns:
            Mapping of server name to a ``"name: implementation"`` label.
        """
        options: dict[str, str] = {}
        for name, server in self.get_all_of_type("server").items():
            if not service_type:
                implementations = ", ".join(
                    f"{stype}/{svc.implementation}" for stype, svc in server.services.items()
                )
                options[name] = f"{name}: {implementations or 'no services'}"
            elif server.provides(service_type):
                options[name] = f"{name}: {server.services[service_type].implementation}"
        return options

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def create(
        self, context_type: str, name: str, config: dict[str, Any] | None = None
    ) -> Context:
        """
        Construct a context bound to this registry without persisting it.

        Raises:
            UnknownContextTypeError: If *context_type* is not registered.
            ConfigurationError: If *config* is invalid.
        """
        return Context.class_for(context_type)(name, config, registry=self)

    def save(self, context: Context) -> None:
        """
        Persist *context* to the store.

        The in-memory index is not modified; load the registry again to see
        the change.
        """
        self.store.write(context.record_id, context.to_record())
        logger.info("Saved %s %r", context.type, context.name)

    def delete(self, name: str) -> bool:
        """
        Delete the record of the context called *name*.

        Raises:
            ContextNotFoundError: If no such context was loaded.
        """
        context = self.get_by_name(name)
        deleted = self.store.delete(context.record_id)
        if deleted:
            logger.info("Deleted %s %r", context.type, context.name)
        return deleted
