"""
Database services: servers hosting site databases.

Registered implementations:
- ``db/mysql``
- ``db/postgresql``
"""

from __future__ import annotations

from provision.schema import ConfigSchema, Scalar
from provision.services.base import Service
from provision.services.registry import register_service
from provision.verification import Check


class DbService(Service):
    """Shared behavior of database services."""

    default_port = 0

    schema = ConfigSchema(
        Scalar("type", required=True),
        Scalar("db_port", kind="integer"),
        Scalar("master_user", default="aegir_root"),
        Scalar("master_password"),
        Scalar("db_grant_all_hosts", kind="boolean", default=False),
    )

    @property
    def port(self) -> int:
        return self.config.get("db_port") or self.default_port

    def checks(self) -> list[Check]:
        return [
            Check(
                kind="tcp_port",
                description=f"{self.implementation} accepting connections on port {self.port}",
                params={"host": self.host, "port": self.port},
            )
        ]


@register_service("db", "mysql")
class MysqlService(DbService):
    """MySQL / MariaDB."""

    default_port = 3306

    schema = DbService.schema.extend(Scalar("db_port", kind="integer", default=3306))


@register_service("db", "postgresql")
class PostgresqlService(DbService):
    """PostgreSQL."""

    default_port = 5432

    schema = DbService.schema.extend(
        Scalar("db_port", kind="integer", default=5432),
        Scalar("master_user", default="postgres"),
    )
