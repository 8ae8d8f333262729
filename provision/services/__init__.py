"""
Services module: Typed capabilities attached to provider contexts.

Provides:
- Service: Base class (validation, provider back-reference, verification checks)
- ServiceRegistry / register_service: (service_type, implementation) table
- Built-in services: http/apache, http/nginx, db/mysql, db/postgresql
"""

from provision.services.base import Service
from provision.services.db import DbService, MysqlService, PostgresqlService
from provision.services.http import ApacheService, HttpService, NginxService
from provision.services.registry import ServiceRegistry, register_service

__all__ = [
    "Service",
    "ServiceRegistry",
    "register_service",
    "HttpService",
    "ApacheService",
    "NginxService",
    "DbService",
    "MysqlService",
    "PostgresqlService",
]
