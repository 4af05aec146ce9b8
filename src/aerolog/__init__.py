"""
AeroLog – post-flight report ingestion and synchronization.

Scanned flight-report printouts are turned into structured records by a
vision model, kept in a local SQLite store and optionally mirrored to a
remote JSON endpoint.
"""

__all__ = [
    "config",
    "logging",
    "paths",
]
