"""
Context module: Named, typed infrastructure objects.

Provides:
- Context: Base class (validated config, lazy references, verification)
- ContextTypeRegistry / register_context: type identifier → variant table
- ProviderContext: Contexts that own services
- ServerContext, PlatformContext, SiteContext: built-in variants
"""

from provision.context.base import Context, ContextTypeRegistry, register_context
from provision.context.platform import PlatformContext
from provision.context.provider import ProviderContext
from provision.context.server import ServerContext
from provision.context.site import SiteContext

__all__ = [
    "Context",
    "ContextTypeRegistry",
    "register_context",
    "ProviderContext",
    "ServerContext",
    "PlatformContext",
    "SiteContext",
]
