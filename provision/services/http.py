"""
HTTP services: web servers hosting platforms.

Registered implementations:
- ``http/apache``
- ``http/nginx``
"""

from __future__ import annotations

from provision.schema import ConfigSchema, Scalar, Sequence
from provision.services.base import Service
from provision.services.registry import register_service
from provision.verification import Check

DEFAULT_HTTP_PORT = 80


class HttpService(Service):
    """Shared behavior of web server services."""

    schema = ConfigSchema(
        Scalar("type", required=True),
        Scalar("http_port", kind="integer", default=DEFAULT_HTTP_PORT),
        Scalar("web_group", default="www-data"),
        Scalar("restart_command"),
    )

    @property
    def port(self) -> int:
        return self.config["http_port"]

    def checks(self) -> list[Check]:
        return [
            Check(
                kind="tcp_port",
                description=f"{self.implementation} listening on port {self.port}",
                params={"host": self.host, "port": self.port},
            )
        ]


@register_service("http", "apache")
class ApacheService(HttpService):
    """Apache httpd."""

    schema = HttpService.schema.extend(
        Scalar("restart_command", default="sudo apache2ctl graceful"),
        Sequence("modules", Scalar("module"), default=["rewrite"]),
    )


@register_service("http", "nginx")
class NginxService(HttpService):
    """nginx."""

    schema = HttpService.schema.extend(
        Scalar("restart_command", default="sudo /etc/init.d/nginx reload"),
        Scalar("http2", kind="boolean", default=False),
    )
