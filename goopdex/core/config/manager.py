"""
ConfigManager: dot-notation access to Goopdex game tunables.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable game values
  (XP rewards, challenge ranges, merge counts).
- Back configuration with YAML defaults shipped in `goopdex/config/`.
- Allow in-memory overrides for balance experiments and tests.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides live in memory only.
- Instances are injected into services (no module-level singleton), so two
  engines in one process can run with different balance settings.
- Missing YAML directories degrade to built-in defaults with a warning.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Union

import yaml

from goopdex.core.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"

_MISSING = object()


class ConfigManagerError(RuntimeError):
    """Raised when a configuration source cannot be loaded."""


class ConfigManager:
    """
    Game configuration with YAML defaults and in-memory overrides.

    Examples
    --------
    >>> config = ConfigManager.from_directory()
    >>> config.get("progression.xp.catch")
    25
    >>> config.set_override("progression.xp.catch", 40)
    """

    def __init__(
        self,
        defaults: Optional[Mapping[str, Any]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._defaults: Dict[str, Any] = copy.deepcopy(dict(defaults or {}))
        self._overrides: Dict[str, Any] = {}
        for key, value in (overrides or {}).items():
            self.set_override(key, value)

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def from_directory(
        cls, config_dir: Optional[Union[str, Path]] = None
    ) -> "ConfigManager":
        """
        Recursively load all YAML files from `config_dir` and deep-merge them.

        Files are merged in sorted path order so later files win on conflicts.
        """
        directory = Path(config_dir) if config_dir is not None else DEFAULT_CONFIG_DIR
        defaults: Dict[str, Any] = {}

        if not directory.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(directory)},
            )
            return cls(defaults)

        yaml_files = sorted(
            list(directory.rglob("*.yaml")) + list(directory.rglob("*.yml"))
        )
        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigManagerError(
                    f"Failed to load YAML config {yaml_file}: {exc}"
                ) from exc

            if isinstance(data, dict):
                cls._deep_merge_dict(defaults, data)
                logger.debug(
                    "Loaded YAML config",
                    extra={"file": str(yaml_file.relative_to(directory))},
                )
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file.relative_to(directory)),
                        "root_type": type(data).__name__,
                    },
                )

        logger.info(
            "ConfigManager loaded",
            extra={"config_dir": str(directory), "files": len(yaml_files)},
        )
        return cls(defaults)

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    @staticmethod
    def _resolve(tree: Mapping[str, Any], key: str) -> Any:
        node: Any = tree
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Overrides take precedence over YAML defaults.
        """
        if key in self._overrides:
            return self._overrides[key]

        value = self._resolve(self._defaults, key)
        if value is _MISSING:
            return default
        return value

    def get_int(self, key: str, default: int = 0) -> int:
        return int(self.get(key, default))

    def get_float(self, key: str, default: float = 0.0) -> float:
        return float(self.get(key, default))

    def get_bool(self, key: str, default: bool = False) -> bool:
        return bool(self.get(key, default))

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def set_override(self, key: str, value: Any) -> None:
        """Override a single dot-notation key for the lifetime of this manager."""
        old_value = self.get(key)
        self._overrides[key] = value
        logger.info(
            "Config override applied",
            extra={"config_key": key, "old_value": old_value, "new_value": value},
        )

    def clear_overrides(self) -> None:
        self._overrides.clear()

    def snapshot(self) -> Dict[str, Any]:
        """Return defaults merged with overrides, as nested dicts."""
        merged = copy.deepcopy(self._defaults)
        for key, value in self._overrides.items():
            node = merged
            parts = key.split(".")
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = value
        return merged
