"""
Analytics error taxonomy.

DataAccessError    — the record store is unreachable or a collection has
                     the wrong shape.  Aborts one patient's computation.
DataQualityError   — a single record failed validation (bad timestamp,
                     out-of-range vital).  The record is excluded.
ConfigurationError — a required identifier or setting is missing.
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for all analytics failures."""
    pass


class DataAccessError(AnalyticsError):
    """Raised when the record store cannot be read."""
    pass


class DataQualityError(AnalyticsError):
    """Raised when a record cannot be parsed into its typed model."""

    def __init__(self, collection: str, reason: str) -> None:
        super().__init__(f"Invalid record in {collection}: {reason}")
        self.collection = collection
        self.reason = reason


class ConfigurationError(AnalyticsError):
    """Raised for missing identifiers or invalid settings."""
    pass
