"""
provision: Describe, validate and verify hosting infrastructure.

A Context is a named, typed record (server, platform, site) persisted in a
ConfigStore. Servers provide Services (http, db); platforms and sites
reference other contexts by name. The ContextRegistry loads every record,
the RequirementResolver answers "can this type be provisioned?", and
verification checks the config against real infrastructure.

Example:
    import provision

    store = provision.MemoryConfigStore({
        "server.alpha": {"services": {"http": {"type": "apache"}}},
        "platform.d10": {"root": "/var/aegir/platforms/d10", "web_server": "alpha"},
    })
    registry = provision.ContextRegistry(store)

    registry.get_by_name("d10").web_server.get_service("http").port   # 80
    provision.RequirementResolver(registry).check_requirements("site")
    # {'http': True, 'db': False}

    results = provision.verify_all(registry.contexts.values(), max_workers=4)
"""

__version__ = "0.1.0"

# Configuration
from provision.config import ProvisionConfig

# Contexts
from provision.context import (
    Context,
    ContextTypeRegistry,
    PlatformContext,
    ProviderContext,
    ServerContext,
    SiteContext,
    register_context,
)

# Errors
from provision.errors import (
    ConfigurationError,
    ContextNotFoundError,
    ContextReferenceError,
    InvalidRecordIdError,
    MissingReferenceError,
    ProvisionError,
    ReferenceNotFoundError,
    ReferenceTypeError,
    SchemaValidationError,
    StoreError,
    UnknownContextTypeError,
    UnregisteredServiceTypeError,
)

# Registry
from provision.registry import ContextRegistry, LoadWarning
from provision.requirements import RequirementResolver

# Schema
from provision.schema import (
    ConfigSchema,
    Enum,
    Mapping,
    MappingOf,
    Reference,
    Scalar,
    SchemaNotice,
    Sequence,
)

# Services
from provision.services import Service, ServiceRegistry, register_service

# Stores
from provision.store import ConfigStore, FileConfigStore, MemoryConfigStore

# Verification
from provision.verification import (
    Check,
    CheckOutcome,
    LocalVerifier,
    VerificationFailure,
    VerificationResult,
    VerificationState,
    Verifier,
    verify_all,
)

__all__ = [
    "__version__",
    # Configuration
    "ProvisionConfig",
    # Contexts
    "Context",
    "ContextTypeRegistry",
    "register_context",
    "ProviderContext",
    "ServerContext",
    "PlatformContext",
    "SiteContext",
    # Errors
    "ProvisionError",
    "ConfigurationError",
    "UnknownContextTypeError",
    "UnregisteredServiceTypeError",
    "SchemaValidationError",
    "MissingReferenceError",
    "InvalidRecordIdError",
    "ContextReferenceError",
    "ReferenceNotFoundError",
    "ReferenceTypeError",
    "ContextNotFoundError",
    "StoreError",
    # Registry
    "ContextRegistry",
    "LoadWarning",
    "RequirementResolver",
    # Schema
    "ConfigSchema",
    "Scalar",
    "Enum",
    "Reference",
    "Mapping",
    "MappingOf",
    "Sequence",
    "SchemaNotice",
    # Services
    "Service",
    "ServiceRegistry",
    "register_service",
    # Stores
    "ConfigStore",
    "FileConfigStore",
    "MemoryConfigStore",
    # Verification
    "Check",
    "CheckOutcome",
    "Verifier",
    "LocalVerifier",
    "VerificationFailure",
    "VerificationResult",
    "VerificationState",
    "verify_all",
]
