"""
ServiceRegistry: Maps (service_type, implementation) to service classes.

Each service module registers its classes at import time::

    from provision.services.registry import register_service

    @register_service("http", "apache")
    class ApacheService(HttpService):
        ...

Providers resolve classes from the ``services`` section of their config::

    service_class = ServiceRegistry.get("http", "apache")

Third-party packages add services through the ``provision.services``
entry-point group; each entry point is loaded once, on first lookup.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from provision.services.base import Service

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """
    Registry mapping ``(service_type, implementation)`` to service classes.

    Built-in services are imported lazily on first lookup so that
    registration happens before any provider builds its services.
    """

    _services: dict[tuple[str, str], type[Service]] = {}
    _loaded: bool = False

    @classmethod
    def register(
        cls, service_type: str, implementation: str, service_class: type[Service]
    ) -> None:
        """
        Register a service class.

        Args:
            service_type: Capability identifier (e.g. ``"http"``).
            implementation: Implementation identifier (e.g. ``"apache"``).
            service_class: The :class:`Service` subclass to instantiate.
        """
        key = (service_type, implementation)
        existing = cls._services.get(key)
        if existing is not None and existing is not service_class:
            logger.warning(
                "Service %s/%s re-registered: %s replaces %s",
                service_type,
                implementation,
                service_class.__name__,
                existing.__name__,
            )
        cls._services[key] = service_class

    @classmethod
    def _ensure_loaded(cls) -> None:
        """Import built-in services and load entry points (once)."""
        if cls._loaded:
            return
        cls._loaded = True

        # Built-in service modules register on import.
        import provision.services.db  # noqa: F401
        import provision.services.http  # noqa: F401

        for ep in entry_points(group="provision.services"):
            try:
                ep.load()
            except Exception:  # noqa: BLE001
                logger.warning("Failed to load service entry point %r", ep.name, exc_info=True)

    @classmethod
    def get(cls, service_type: str, implementation: str) -> type[Service] | None:
        """Get the class for a service type and implementation, or ``None``."""
        cls._ensure_loaded()
        return cls._services.get((service_type, implementation))

    @classmethod
    def types(cls) -> list[tuple[str, str]]:
        """List all registered ``(service_type, implementation)`` pairs."""
        cls._ensure_loaded()
        return sorted(cls._services)

    @classmethod
    def service_types(cls) -> list[str]:
        """List the distinct registered service types."""
        return sorted({service_type for service_type, _ in cls.types()})

    @classmethod
    def implementations(cls, service_type: str) -> list[str]:
        """List implementations registered for *service_type*."""
        return [impl for stype, impl in cls.types() if stype == service_type]


def register_service(
    service_type: str, implementation: str
) -> Callable[[type[Service]], type[Service]]:
    """
    Class decorator registering a :class:`Service` subclass.

    Sets ``service_type`` and ``implementation`` on the class.
    """

    def decorator(service_class: type[Service]) -> type[Service]:
        service_class.service_type = service_type
        service_class.implementation = implementation
        ServiceRegistry.register(service_type, implementation, service_class)
        return service_class

    return decorator
