"""
ProvisionConfig: Project-level configuration loader for provision.

This module provides:

- find_config_file: Walk up directories to locate .provision.toml
- deep_merge: Recursively merge two dicts (override wins for leaf values)
- ProvisionConfig: Settings for the store location and verification

Configuration is loaded from ``.provision.toml`` with optional
``.provision.local.toml`` overrides from the same directory. Settings live
in the ``[provision]`` table:

    [provision]
    config_path = "~/.config/provision"
    max_workers = 4
    check_timeout = 2.0

The resolution order is:

    defaults → .provision.toml → .provision.local.toml → PROVISION_CONFIG_PATH

Context records are stored under ``{config_path}/provision/``.

Example:
    >>> config = ProvisionConfig.load()
    >>> config.records_path
    PosixPath('/home/aegir/.config/provision/provision')
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from provision.schema import ConfigSchema, Scalar

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".provision.toml"
LOCAL_CONFIG_FILENAME = ".provision.local.toml"
CONFIG_PATH_ENV = "PROVISION_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "~/.config/provision"
RECORDS_DIRNAME = "provision"

SETTINGS_SCHEMA = ConfigSchema(
    Scalar("config_path", default=DEFAULT_CONFIG_PATH),
    Scalar("max_workers", kind="integer", default=4),
    Scalar("check_timeout", kind="number", default=2.0),
)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """
    Walk up from *start_dir* to find ``.provision.toml``.

    Args:
        start_dir: Directory to start searching from. Defaults to ``Path.cwd()``.

    Returns:
        Path to the config file, or ``None`` if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate

        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts. *override* wins for leaf values.

    Neither input is mutated; a new dict is returned.
    """
    merged: dict[str, Any] = {}

    for key in base.keys() | override.keys():
        if key in base and key in override:
            base_val = base[key]
            over_val = override[key]
            if isinstance(base_val, dict) and isinstance(over_val, dict):
                merged[key] = deep_merge(base_val, over_val)
            else:
                merged[key] = over_val
        elif key in base:
            merged[key] = base[key]
        else:
            merged[key] = override[key]

    return merged


# ---------------------------------------------------------------------------
# Config object
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProvisionConfig:
    """
    Resolved provision settings.

    Attributes:
        config_path: Base directory for provision data.
        max_workers: Worker threads used to verify contexts in parallel.
        check_timeout: Timeout in seconds for individual verification checks.
        source: The ``.provision.toml`` file used, if any.
    """

    config_path: Path
    max_workers: int = 4
    check_timeout: float = 2.0
    source: Path | None = None

    @property
    def records_path(self) -> Path:
        """Directory holding ``{type}.{name}.yml`` context records."""
        return self.config_path / RECORDS_DIRNAME

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        start_dir: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> ProvisionConfig:
        """
        Find and load configuration.

        Walks up from *start_dir* (default: cwd) to locate
        ``.provision.toml``. A missing file is not an error: defaults apply.

        Args:
            start_dir: Directory to start searching from.
            environ: Environment mapping (default: ``os.environ``).

        Returns:
            A fully-resolved :class:`ProvisionConfig`.

        Raises:
            SchemaValidationError: If a setting has the wrong type.
            tomllib.TOMLDecodeError: If a config file is not valid TOML.
        """
        environ = os.environ if environ is None else environ

        data: dict[str, Any] = {}
        local_overrides: dict[str, Any] = {}
        config_path = find_config_file(start_dir)
        if config_path is not None:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            local_path = config_path.parent / LOCAL_CONFIG_FILENAME
            if local_path.is_file():
                with open(local_path, "rb") as f:
                    local_overrides = tomllib.load(f)
            logger.debug("Loaded configuration from %s", config_path)
        else:
            logger.debug("No %s found; using defaults", CONFIG_FILENAME)

        config = cls.from_dict(data, local_overrides=local_overrides, source=config_path)

        env_path = environ.get(CONFIG_PATH_ENV)
        if env_path:
            config = cls(
                config_path=Path(env_path).expanduser(),
                max_workers=config.max_workers,
                check_timeout=config.check_timeout,
                source=config.source,
            )
        return config

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        local_overrides: dict[str, Any] | None = None,
        source: Path | None = None,
    ) -> ProvisionConfig:
        """
        Create a :class:`ProvisionConfig` from parsed TOML data.

        Relative ``config_path`` values are resolved against the directory
        of *source* when given.
        """
        merged = deep_merge(data, local_overrides or {})
        outcome = SETTINGS_SCHEMA.validate(merged.get("provision", {}), path="provision")
        for notice in outcome.notices:
            logger.warning("Ignoring setting %s", notice)
        settings = outcome.config

        config_path = Path(settings["config_path"]).expanduser()
        if not config_path.is_absolute() and source is not None:
            config_path = source.parent / config_path

        return cls(
            config_path=config_path,
            max_workers=max(1, settings["max_workers"]),
            check_timeout=float(settings["check_timeout"]),
            source=source,
        )
