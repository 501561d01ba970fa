"""
Custom exception hierarchy for the file catalog.

This module defines specific exception types so callers can tell lookup
misses and lifecycle errors apart from genuine failures.
"""


class FileCatalogError(Exception):
    """Base exception for all file catalog errors."""
    pass


class ContentExtractionError(FileCatalogError):
    """Raised when content cannot be extracted from a file."""
    pass


class SnapshotError(FileCatalogError):
    """Raised when the catalog snapshot cannot be read or written."""
    pass


class SnapshotWriteError(SnapshotError):
    """Raised when the snapshot could not be written after all retries."""
    pass


class CatalogNotReadyError(FileCatalogError):
    """Raised when the catalog is used before it has been opened."""
    pass


class ScanNotFoundError(FileCatalogError):
    """Raised when a scan id is not present in the catalog."""
    pass


class FileNotInCatalogError(FileCatalogError):
    """Raised when a path is not present in the catalog."""
    pass


class ScanCancelledError(FileCatalogError):
    """Raised when an ingestion run is cancelled between batches."""
    pass
