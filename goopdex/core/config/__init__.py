"""
Goopdex configuration.

- `Config`: static, environment-driven settings (python-dotenv)
- `goopdex.core.config.manager.ConfigManager`: YAML-backed game tunables

ConfigManager is imported from its module directly; it depends on the logging
subsystem, which itself reads `Config`.
"""

from goopdex.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
