"""
Tests for services and the ServiceRegistry.

Tests:
- Built-in implementations are registered
- Unregistered (type, implementation) pairs raise
- Per-implementation schemas and defaults
- Validation errors carry the service path
- Weak back-reference to the provider
- Checks and verification through a verifier
"""

from __future__ import annotations

import gc

import pytest

from provision.context.server import ServerContext
from provision.errors import (
    ProvisionError,
    SchemaValidationError,
    UnregisteredServiceTypeError,
)
from provision.services import (
    ApacheService,
    MysqlService,
    NginxService,
    PostgresqlService,
    Service,
    ServiceRegistry,
)


def make_server(services: dict, name: str = "alpha", **config) -> ServerContext:
    return ServerContext(name, {"services": services, **config})


class TestServiceRegistry:
    """Tests for ServiceRegistry lookups."""

    def test_builtins_registered(self) -> None:
        assert ServiceRegistry.get("http", "apache") is ApacheService
        assert ServiceRegistry.get("http", "nginx") is NginxService
        assert ServiceRegistry.get("db", "mysql") is MysqlService
        assert ServiceRegistry.get("db", "postgresql") is PostgresqlService

    def test_service_types(self) -> None:
        assert ServiceRegistry.service_types() == ["db", "http"]
        assert ServiceRegistry.implementations("http") == ["apache", "nginx"]

    def test_decorator_sets_identifiers(self) -> None:
        assert ApacheService.service_type == "http"
        assert ApacheService.implementation == "apache"

    def test_class_for_unknown_implementation(self) -> None:
        with pytest.raises(UnregisteredServiceTypeError) as exc_info:
            Service.class_for("http", "lighttpd")
        assert exc_info.value.service_type == "http"
        assert exc_info.value.implementation == "lighttpd"
        assert "http/apache" in str(exc_info.value)

    def test_class_for_unknown_type(self) -> None:
        with pytest.raises(UnregisteredServiceTypeError):
            Service.class_for("mail", "postfix")

    def test_unregistered_service_in_provider(self) -> None:
        """A provider declaring an unknown implementation fails to build."""
        with pytest.raises(UnregisteredServiceTypeError):
            make_server({"http": {"type": "lighttpd"}})


class TestServiceConfig:
    """Tests for per-implementation validation."""

    def test_apache_defaults(self) -> None:
        server = make_server({"http": {"type": "apache"}})
        http = server.get_service("http")
        assert isinstance(http, ApacheService)
        assert http.config == {
            "type": "apache",
            "http_port": 80,
            "web_group": "www-data",
            "restart_command": "sudo apache2ctl graceful",
            "modules": ["rewrite"],
        }

    def test_nginx_specific_field(self) -> None:
        server = make_server({"http": {"type": "nginx", "http2": True}})
        assert server.get_service("http").config["http2"] is True

    def test_db_ports(self) -> None:
        mysql = make_server({"db": {"type": "mysql"}}).get_service("db")
        postgres = make_server({"db": {"type": "postgresql"}}).get_service("db")
        assert mysql.port == 3306
        assert postgres.port == 5432
        assert postgres.config["master_user"] == "postgres"

    def test_normalized_config_written_back(self) -> None:
        """The provider's config holds each service's normalized section."""
        server = make_server({"http": {"type": "apache", "http_port": 8080}})
        assert server.config["services"]["http"]["http_port"] == 8080
        assert server.config["services"]["http"]["web_group"] == "www-data"

    def test_invalid_value_reports_service_path(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            make_server({"http": {"type": "apache", "http_port": "eighty"}})
        assert exc_info.value.path == "services.http.http_port"

    def test_missing_type_reports_service_path(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            make_server({"db": {"db_port": 3306}})
        assert exc_info.value.path == "services.db.type"

    def test_unknown_service_field_becomes_notice(self) -> None:
        server = make_server({"db": {"type": "mysql", "charset": "utf8"}})
        assert "charset" not in server.get_service("db").config
        assert [str(n) for n in server.notices] == [
            "services.db.charset: unknown field stripped"
        ]


class TestServiceProvider:
    """Tests for the service → provider relationship."""

    def test_get_provider(self) -> None:
        server = make_server({"http": {"type": "apache"}})
        http = server.get_service("http")
        assert http.get_provider() is server
        assert http.get_type() == "http"
        assert http.provider_name == "alpha"

    def test_host_from_provider(self) -> None:
        server = make_server({"http": {"type": "apache"}}, remote_host="10.0.0.5")
        assert server.get_service("http").host == "10.0.0.5"

    def test_provider_reference_is_weak(self) -> None:
        """A service does not keep its provider alive."""
        server = make_server({"http": {"type": "apache"}})
        http = server.get_service("http")
        del server
        gc.collect()
        with pytest.raises(ProvisionError, match="no longer exists"):
            http.get_provider()

    def test_get_service_missing(self) -> None:
        server = make_server({"http": {"type": "apache"}})
        with pytest.raises(ProvisionError, match="Service 'db' does not exist"):
            server.get_service("db")
        assert server.provides("http")
        assert not server.provides("db")


class TestServiceVerification:
    """Tests for service checks."""

    def test_http_check_targets_port(self, verifier) -> None:
        server = make_server(
            {"http": {"type": "nginx", "http_port": 8080}}, remote_host="web1"
        )
        checks = server.get_service("http").checks()
        assert len(checks) == 1
        assert checks[0].kind == "tcp_port"
        assert checks[0].params == {"host": "web1", "port": 8080}

    def test_verify_success(self, verifier) -> None:
        server = make_server({"db": {"type": "mysql"}})
        assert server.get_service("db").verify(verifier) == []
        assert len(verifier.checks) == 1

    def test_verify_failure(self, make_verifier) -> None:
        server = make_server({"db": {"type": "mysql"}})
        failures = server.get_service("db").verify(make_verifier(failing=("mysql",)))
        assert len(failures) == 1
        assert failures[0].subject == "service:db"
        assert "is down" in failures[0].message

    def test_verifier_exception_becomes_failure(self, make_verifier) -> None:
        server = make_server({"db": {"type": "mysql"}})
        failures = server.get_service("db").verify(make_verifier(raise_on="mysql"))
        assert len(failures) == 1
        assert failures[0].message.startswith("RuntimeError: check crashed")
