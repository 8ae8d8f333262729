"""PlatformContext: a code base served by a web server."""

from __future__ import annotations

from typing import TYPE_CHECKING

from provision.context.base import Context, register_context
from provision.errors import ContextReferenceError
from provision.schema import ConfigSchema, Reference, Scalar
from provision.verification import Check, VerificationFailure, Verifier, run_check

if TYPE_CHECKING:
    from provision.context.server import ServerContext


@register_context("platform")
class PlatformContext(Context):
    """
    A platform: a code base on disk, served by a web server.

    Config:
        root: Path to the code base on the web server.
        web_server: Name of the server hosting the platform (required).
        makefile: Makefile used to build the platform if it does not exist.
        make_working_copy: Build with working copies (default false).
    """

    schema = ConfigSchema(
        Scalar("root", required=True),
        Reference("web_server", "server", required=True),
        Scalar("makefile"),
        Scalar("make_working_copy", kind="boolean", default=False),
    )
    requirements = ("http",)
    reference_services = {"web_server": "http"}

    @property
    def root(self) -> str:
        return self.config["root"]

    @property
    def web_server(self) -> ServerContext:
        return self.reference("web_server")

    def collect_failures(self, verifier: Verifier) -> list[VerificationFailure]:
        failures = super().collect_failures(verifier)
        try:
            host = self.web_server.remote_host
        except ContextReferenceError:
            # Already reported by the reference check.
            return failures
        check = Check(
            kind="path_exists",
            description=f"platform root {self.root} exists",
            params={"host": host, "path": self.root},
        )
        failure = run_check(verifier, check, "platform:root")
        if failure is not None:
            failures.append(failure)
        return failures
