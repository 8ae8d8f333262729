"""
RequirementResolver: Can a context type be provisioned with the known servers?

Each context variant declares the service types it needs
(:meth:`Context.service_requirements`). A requirement is satisfied when at
least one server in the registry owns a service of that type.

Results are data, not failures: the resolver returns a boolean per
requirement and leaves policy ("warn but allow" vs "block") and message
formatting to the caller.

Example:
    >>> resolver = RequirementResolver(registry)
    >>> resolver.check_requirements("site")
    {'http': True, 'db': False}
    >>> resolver.unmet("site")
    ['db']
"""

from __future__ import annotations

import logging

from provision.context.base import Context
from provision.registry import ContextRegistry

logger = logging.getLogger(__name__)

PROVIDER_TYPE = "server"


class RequirementResolver:
    """Answers requirement questions against a :class:`ContextRegistry`."""

    def __init__(self, registry: ContextRegistry) -> None:
        self.registry = registry

    def requirements(self, context_type: str) -> tuple[str, ...]:
        """
        Service types required by *context_type*.

        Raises:
            UnknownContextTypeError: If *context_type* is not registered.
        """
        return Context.class_for(context_type).service_requirements()

    def providers_for(self, service_type: str) -> list[str]:
        """Names of the servers that provide *service_type*."""
        return [
            name
            for name, server in self.registry.get_all_of_type(PROVIDER_TYPE).items()
            if server.provides(service_type)
        ]

    def check_requirements(self, context_type: str) -> dict[str, bool]:
        """
        Check each service requirement of *context_type*.

        Returns:
            Mapping of required service type to ``True`` when at least one
            known server provides it. An empty registry yields ``False`` for
            every requirement.

        Raises:
            UnknownContextTypeError: If *context_type* is not registered.
            StoreError: If the registry cannot be loaded.
        """
        required = self.requirements(context_type)
        servers = self.registry.get_all_of_type(PROVIDER_TYPE)

        results: dict[str, bool] = {}
        for service_type in required:
            results[service_type] = any(
                server.provides(service_type) for server in servers.values()
            )
        logger.debug("Requirements for %r: %s", context_type, results)
        return results

    def unmet(self, context_type: str) -> list[str]:
        """Required service types of *context_type* that no server provides."""
        return [
            service_type
            for service_type, met in self.check_requirements(context_type).items()
            if not met
        ]

    def is_provisionable(self, context_type: str) -> bool:
        """True when every requirement of *context_type* is met."""
        return not self.unmet(context_type)
