"""SiteContext: a site hosted on a platform with a database."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from provision.context.base import Context, register_context
from provision.schema import ConfigSchema, Reference, Scalar, Sequence

if TYPE_CHECKING:
    from provision.context.platform import PlatformContext
    from provision.context.server import ServerContext


@register_context("site")
class SiteContext(Context):
    """
    A site: runs on a platform and stores its data on a database server.

    Provisioning a site needs everything its platform needs, plus a
    database service.

    Config:
        platform: Name of the platform (required).
        db_server: Name of the server hosting the database (required).
        uri: Site URI (defaults to the context name).
        aliases: Additional URIs.
        language: Install language (default ``en``).
        profile: Install profile (default ``standard``).
    """

    schema = ConfigSchema(
        Reference("platform", "platform", required=True),
        Reference("db_server", "server", required=True),
        Scalar("uri", required=True),
        Sequence("aliases", Scalar("alias"), default=[]),
        Scalar("language", default="en"),
        Scalar("profile", default="standard"),
    )
    requirements = ("db",)
    inherits_requirements_from = ("platform",)
    reference_services = {"db_server": "db"}

    def prepare_config(self, raw: dict[str, Any]) -> dict[str, Any]:
        if raw.get("uri") is None:
            raw["uri"] = self.name
        return raw

    @property
    def uri(self) -> str:
        return self.config["uri"]

    @property
    def platform(self) -> PlatformContext:
        return self.reference("platform")

    @property
    def db_server(self) -> ServerContext:
        return self.reference("db_server")
