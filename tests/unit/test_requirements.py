"""Tests for RequirementResolver."""

from __future__ import annotations

import pytest

from provision.errors import UnknownContextTypeError
from provision.registry import ContextRegistry
from provision.requirements import RequirementResolver
from provision.store.memory import MemoryConfigStore


def resolver_for(records: dict) -> RequirementResolver:
    return RequirementResolver(ContextRegistry(MemoryConfigStore(records)))


class TestCheckRequirements:
    """Tests for RequirementResolver.check_requirements()."""

    def test_empty_registry_all_false(self) -> None:
        resolver = resolver_for({})
        assert resolver.check_requirements("site") == {"http": False, "db": False}
        assert resolver.check_requirements("platform") == {"http": False}

    def test_server_has_no_requirements(self) -> None:
        assert resolver_for({}).check_requirements("server") == {}

    def test_partial(self) -> None:
        resolver = resolver_for({"server.alpha": {"services": {"http": {"type": "apache"}}}})
        assert resolver.check_requirements("site") == {"http": True, "db": False}
        assert resolver.check_requirements("platform") == {"http": True}

    def test_services_on_different_servers(self) -> None:
        resolver = resolver_for(
            {
                "server.web": {"services": {"http": {"type": "nginx"}}},
                "server.data": {"services": {"db": {"type": "postgresql"}}},
            }
        )
        assert resolver.check_requirements("site") == {"http": True, "db": True}

    def test_order_follows_declaration(self) -> None:
        results = resolver_for({}).check_requirements("site")
        assert list(results) == ["http", "db"]

    def test_only_servers_count(self, registry: ContextRegistry) -> None:
        """Non-server contexts never satisfy a requirement."""
        resolver = RequirementResolver(registry)
        assert resolver.providers_for("http") == ["alpha", "beta"]

    def test_unknown_type(self) -> None:
        with pytest.raises(UnknownContextTypeError):
            resolver_for({}).check_requirements("mailserver")


class TestHelpers:
    """Tests for unmet() / providers_for() / is_provisionable()."""

    def test_unmet(self) -> None:
        resolver = resolver_for({"server.alpha": {"services": {"http": {"type": "apache"}}}})
        assert resolver.unmet("site") == ["db"]
        assert not resolver.is_provisionable("site")
        assert resolver.is_provisionable("platform")

    def test_providers_for(self, registry: ContextRegistry) -> None:
        resolver = RequirementResolver(registry)
        assert resolver.providers_for("db") == ["alpha"]
        assert resolver.providers_for("mail") == []

    def test_requirements(self, registry: ContextRegistry) -> None:
        assert RequirementResolver(registry).requirements("site") == ("http", "db")
