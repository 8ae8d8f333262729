"""
MemoryConfigStore: In-process configuration store.

Records are kept in insertion order, which is also the listing order.
Re-writing an existing record keeps its original position.
"""

from __future__ import annotations

import copy
import fnmatch
from typing import Any

from provision.errors import StoreError
from provision.store.base import split_record_id


class MemoryConfigStore:
    """Dict-backed :class:`ConfigStore`."""

    def __init__(self, records: dict[str, dict[str, Any]] | None = None) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        for record_id, config in (records or {}).items():
            self.write(record_id, config)

    def list(self, pattern: str = "*") -> list[str]:
        return [rid for rid in self._records if fnmatch.fnmatchcase(rid, pattern)]

    def read(self, record_id: str) -> dict[str, Any]:
        try:
            return copy.deepcopy(self._records[record_id])
        except KeyError:
            raise StoreError(f"No record {record_id!r} in memory store") from None

    def write(self, record_id: str, config: dict[str, Any]) -> None:
        split_record_id(record_id)
        self._records[record_id] = copy.deepcopy(config)

    def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"MemoryConfigStore(records={len(self._records)})"
