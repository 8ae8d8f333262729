"""
Store module: Persistence for context configuration records.

Provides:

- ConfigStore: Protocol for record storage backends
- FileConfigStore: Directory of ``{type}.{name}.yml`` files
- MemoryConfigStore: In-process store (tests, embedding)
- make_record_id / split_record_id: ``{type}.{name}`` helpers
"""

from provision.store.base import ConfigStore, make_record_id, split_record_id
from provision.store.file import FileConfigStore
from provision.store.memory import MemoryConfigStore

__all__ = [
    "ConfigStore",
    "FileConfigStore",
    "MemoryConfigStore",
    "make_record_id",
    "split_record_id",
]
