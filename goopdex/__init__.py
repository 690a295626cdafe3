"""
Goopdex progression engine.

Entry point: `goopdex.modules.progression.build_engine()`.
"""

__version__ = "0.1.0"
