"""
ProviderContext: A context that hosts services (typically a server).

The provider owns its :class:`Service` instances outright; each service
keeps only a weak back-reference. Services are built from the ``services``
section of the provider's config, keyed by service type::

    services:
      http:
        type: apache
      db:
        type: mysql
"""

from __future__ import annotations

from typing import Any

from provision.context.base import Context
from provision.errors import ProvisionError
from provision.schema import Mapping, MappingOf, Node, Scalar
from provision.services.base import Service
from provision.verification import VerificationFailure, Verifier


def services_node() -> Node:
    """Schema node for a provider's ``services`` section.

    Only ``type`` is checked here; the rest of each section is validated by
    the service's own schema.
    """
    return MappingOf(
        "services",
        Mapping("service", [Scalar("type", required=True)], allow_unknown=True),
        default={},
    )


class ProviderContext(Context):
    """Context class for a provider of services."""

    role = "provider"

    def build(self) -> None:
        """Load Service classes from config into the context."""
        self.services: dict[str, Service] = {}
        sections: dict[str, Any] = self.config.get("services", {})
        for service_type, section in sections.items():
            service_class = Service.class_for(service_type, section.get("type"))
            service = service_class(section, self)
            self.services[service_type] = service
            sections[service_type] = service.config
            self.notices.extend(service.notices)

    def get_services(self) -> dict[str, Service]:
        """Return all services this context provides."""
        return dict(self.services)

    def get_service(self, service_type: str) -> Service:
        """
        Return the service of *service_type*.

        Raises:
            ProvisionError: If the context provides no such service.
        """
        try:
            return self.services[service_type]
        except KeyError:
            raise ProvisionError(
                f"Service {service_type!r} does not exist in the context {self.name!r}."
            ) from None

    def provides(self, service_type: str) -> bool:
        return service_type in self.services

    def collect_failures(self, verifier: Verifier) -> list[VerificationFailure]:
        failures = super().collect_failures(verifier)
        for service in self.services.values():
            failures.extend(service.verify(verifier))
        return failures
