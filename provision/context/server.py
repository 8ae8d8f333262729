"""ServerContext: a machine that provides services."""

from __future__ import annotations

from provision.context.base import register_context
from provision.context.provider import ProviderContext, services_node
from provision.schema import ConfigSchema, Scalar


@register_context("server")
class ServerContext(ProviderContext):
    """
    A server hosting services.

    Config:
        remote_host: Host name or address (default ``localhost``).
        script_user: User running provisioning scripts (default ``aegir``).
        aegir_root: Home directory of the script user (default ``/var/aegir``).
        services: Service sections keyed by service type.
    """

    schema = ConfigSchema(
        Scalar("remote_host", default="localhost"),
        Scalar("script_user", default="aegir"),
        Scalar("aegir_root", default="/var/aegir"),
        services_node(),
    )

    @property
    def remote_host(self) -> str:
        return self.config["remote_host"]
