"""
Goopdex database infrastructure: declarative base, column types and the
async `DatabaseService`.
"""

from goopdex.core.database.base import (
    Base,
    IdMixin,
    TimestampMixin,
    UTCDateTime,
    enum_type,
    utcnow,
)
from goopdex.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "UTCDateTime",
    "utcnow",
    "enum_type",
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
