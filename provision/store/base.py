"""
ConfigStore protocol: Backend-agnostic persistence for context records.

A record is a nested field mapping identified by ``{type}.{name}``, e.g.
``server.alpha`` or ``platform.d10``. The core only needs to list, read,
write and delete records; how they are persisted is up to the backend:

- FileConfigStore: one YAML file per record in a directory
- MemoryConfigStore: in-process dict (tests, embedding)
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from provision.errors import InvalidRecordIdError

RECORD_SEPARATOR = "."


def make_record_id(context_type: str, name: str) -> str:
    """
    Build a record identifier from a context type and name.

    Raises:
        InvalidRecordIdError: If either part is empty or contains the separator.
    """
    record_id = f"{context_type}{RECORD_SEPARATOR}{name}"
    if (
        not context_type
        or not name
        or RECORD_SEPARATOR in context_type
        or RECORD_SEPARATOR in name
    ):
        raise InvalidRecordIdError(record_id)
    return record_id


def split_record_id(record_id: str) -> tuple[str, str]:
    """
    Split ``"{type}.{name}"`` into ``(type, name)``.

    Raises:
        InvalidRecordIdError: If the identifier does not have exactly two
            non-empty parts.
    """
    parts = record_id.split(RECORD_SEPARATOR)
    if len(parts) != 2 or not all(parts):
        raise InvalidRecordIdError(record_id)
    return parts[0], parts[1]


@runtime_checkable
class ConfigStore(Protocol):
    """
    Protocol for configuration record storage.

    Listing order is part of the contract: :class:`ContextRegistry` reads
    records in the order returned by :meth:`list`, and when two records share
    a name the one read last wins.
    """

    def list(self, pattern: str = "*") -> list[str]:
        """
        List record identifiers matching a glob *pattern*.

        Args:
            pattern: ``fnmatch``-style pattern applied to record ids.

        Returns:
            Matching record ids, in the backend's listing order.
        """
        ...

    def read(self, record_id: str) -> dict[str, Any]:
        """
        Read a record.

        Raises:
            StoreError: If the record is missing or unreadable.
        """
        ...

    def write(self, record_id: str, config: dict[str, Any]) -> None:
        """Create or replace a record."""
        ...

    def delete(self, record_id: str) -> bool:
        """Delete a record. Returns ``True`` if it existed."""
        ...
