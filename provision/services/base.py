"""
Service: A typed capability attached to a provider context.

A provider (typically a server) declares its services in config::

    services:
      http:
        type: apache
        http_port: 8080
      db:
        type: mysql

Each entry becomes a :class:`Service` instance owned by the provider. The
key (``http``) is the service type; the ``type`` field selects the
implementation class through :class:`ServiceRegistry`.

Services keep only a weak back-reference to their provider: the provider
owns its services, never the other way round.
"""

from __future__ import annotations

import logging
import weakref
from typing import TYPE_CHECKING, Any, ClassVar

from provision.errors import ProvisionError, UnregisteredServiceTypeError
from provision.schema import ConfigSchema, Scalar, SchemaNotice
from provision.services.registry import ServiceRegistry
from provision.verification import Check, VerificationFailure, Verifier, run_check

if TYPE_CHECKING:
    from provision.context.base import Context

logger = logging.getLogger(__name__)


class Service:
    """
    Base class for services.

    Subclasses set :attr:`schema` (the full schema of the service section,
    including ``type``) and implement :meth:`checks`.
    """

    service_type: ClassVar[str] = ""
    implementation: ClassVar[str] = ""
    schema: ClassVar[ConfigSchema] = ConfigSchema(Scalar("type", required=True))

    def __init__(self, config: dict[str, Any], provider: Context) -> None:
        """
        Build and validate a service.

        Args:
            config: The service section from the provider's config.
            provider: The owning provider context.

        Raises:
            SchemaValidationError: If *config* does not match :attr:`schema`.
        """
        self._provider = weakref.ref(provider)
        self.provider_name = provider.name
        self.raw_config = dict(config)
        self.notices: list[SchemaNotice] = []
        self.config: dict[str, Any] = self.validate()

    @classmethod
    def class_for(cls, service_type: str, implementation: str | None) -> type[Service]:
        """
        Map a service type and implementation to the class to instantiate.

        Raises:
            UnregisteredServiceTypeError: If nothing is registered for the pair.
        """
        service_class = None
        if implementation:
            service_class = ServiceRegistry.get(service_type, implementation)
        if service_class is None:
            raise UnregisteredServiceTypeError(
                service_type, implementation, ServiceRegistry.types()
            )
        return service_class

    @property
    def path(self) -> str:
        """Dotted path of this service's section in the provider config."""
        return f"services.{self.service_type}"

    def validate(self) -> dict[str, Any]:
        """
        Validate the raw service config against :attr:`schema`.

        Returns:
            The normalized config. Notices are stored on :attr:`notices`.
        """
        outcome = self.schema.validate(self.raw_config, path=self.path)
        self.notices = list(outcome.notices)
        for notice in self.notices:
            logger.info("Service %s on %r: %s", self.service_type, self.provider_name, notice)
        return outcome.config

    def get_type(self) -> str:
        """Return the service type identifier (e.g. ``"http"``)."""
        return self.service_type

    def get_provider(self) -> Context:
        """
        Return the provider context.

        Raises:
            ProvisionError: If the provider no longer exists.
        """
        provider = self._provider()
        if provider is None:
            raise ProvisionError(
                f"Provider {self.provider_name!r} of service {self.service_type!r} "
                "no longer exists"
            )
        return provider

    @property
    def host(self) -> str:
        """Host the service runs on (the provider's ``remote_host``)."""
        return self.get_provider().config.get("remote_host", "localhost")

    def checks(self) -> list[Check]:
        """Checks that confirm this service is actually running."""
        return []

    def verify(self, verifier: Verifier) -> list[VerificationFailure]:
        """
        Run every check through *verifier* and collect the failures.

        Returns:
            Failures, empty when the service verified successfully.
        """
        subject = f"service:{self.service_type}"
        failures = []
        for check in self.checks():
            failure = run_check(verifier, check, subject)
            if failure is not None:
                failures.append(failure)
        return failures

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(type={self.service_type!r}, "
            f"implementation={self.implementation!r}, provider={self.provider_name!r})"
        )
