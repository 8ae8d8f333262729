"""
FileConfigStore: Filesystem-based configuration store.

Layout:
    {root}/
    ├── server.alpha.yml
    ├── platform.d10.yml
    └── site.example.com.yml   # invalid: names may not contain '.'

Each record is a YAML mapping. Files without a ``.`` in their stem are not
records and are ignored (logged at DEBUG level). Record-like files whose id
does not split into exactly ``{type}.{name}`` are skipped with a WARNING and
listed in :attr:`FileConfigStore.skipped`.

Guarantees:

- Atomic writes: temp file + rename
- Deterministic listing: record ids sorted lexically
"""

from __future__ import annotations

import fnmatch
import logging
import uuid
from pathlib import Path
from typing import Any

import yaml

from provision.errors import InvalidRecordIdError, StoreError
from provision.store.base import RECORD_SEPARATOR, split_record_id

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".yml"


class FileConfigStore:
    """
    Directory of YAML records.

    Example:
    ```python
    store = FileConfigStore("~/.config/provision/provision")
    store.write("server.alpha", {"remote_host": "10.0.0.5"})
    store.list("server.*")   # ['server.alpha']
    ```
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self.skipped: list[str] = []

    @property
    def root(self) -> Path:
        """The directory holding the record files."""
        return self._root

    def __repr__(self) -> str:
        return f"FileConfigStore(root={str(self._root)!r})"

    def path_for(self, record_id: str) -> Path:
        """Return the file path for *record_id*."""
        split_record_id(record_id)
        return self._root / f"{record_id}{RECORD_SUFFIX}"

    # =========================================================================
    # ConfigStore protocol
    # =========================================================================

    def list(self, pattern: str = "*") -> list[str]:
        self.skipped = []
        if not self._root.exists():
            return []
        if not self._root.is_dir():
            raise StoreError(f"Configuration path is not a directory: {self._root}")

        record_ids = []
        skipped: list[str] = []
        try:
            paths = sorted(self._root.glob(f"*{RECORD_SUFFIX}"))
        except OSError as e:
            raise StoreError(f"Cannot list {self._root}: {e}") from e

        for path in paths:
            record_id = path.name[: -len(RECORD_SUFFIX)]
            try:
                split_record_id(record_id)
            except InvalidRecordIdError:
                if RECORD_SEPARATOR in record_id:
                    logger.warning(
                        "Skipping record file %s: id %r is not {type}.{name}",
                        path,
                        record_id,
                    )
                    skipped.append(record_id)
                else:
                    logger.debug("Skipping non-record file %s", path)
                continue
            if fnmatch.fnmatchcase(record_id, pattern):
                record_ids.append(record_id)
        self.skipped = skipped
        return record_ids

    def read(self, record_id: str) -> dict[str, Any]:
        path = self.path_for(record_id)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise StoreError(f"No record {record_id!r} at {path}") from None
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Cannot read record {record_id!r} from {path}: {e}") from e

        if data is None:
            logger.warning("Record file is empty: %s", path)
            return {}
        if not isinstance(data, dict):
            raise StoreError(
                f"Record {record_id!r} must contain a mapping, got {type(data).__name__}"
            )
        return data

    def write(self, record_id: str, config: dict[str, Any]) -> None:
        path = self.path_for(record_id)
        content = yaml.safe_dump(config, default_flow_style=False, sort_keys=False)
        try:
            self._atomic_write(path, content.encode("utf-8"))
        except OSError as e:
            raise StoreError(f"Cannot write record {record_id!r} to {path}: {e}") from e
        logger.debug("Wrote record %s to %s", record_id, path)

    def delete(self, record_id: str) -> bool:
        path = self.path_for(record_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreError(f"Cannot delete record {record_id!r}: {e}") from e
        return True

    # =========================================================================
    # Atomic write utilities
    # =========================================================================

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        """Write data atomically using temp file + rename."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(f".tmp.{uuid.uuid4().hex[:8]}")
        try:
            tmp.write_bytes(data)
            tmp.rename(path)  # Atomic on POSIX
        except Exception:
            if tmp.exists():
                tmp.unlink()
            raise
