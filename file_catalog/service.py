"""
Caller-facing facade over FileCatalog.

Every operation returns an Outcome instead of raising, so a UI or IPC layer
can forward results without its own error handling.
"""
import logging
import time
from functools import wraps
from pathlib import Path
from typing import Optional

from . import config
from .core import FileCatalog
from .exceptions import (
    FileCatalogError, CatalogNotReadyError, ScanNotFoundError, FileNotInCatalogError,
)
from .models import Outcome, Status
from .scanning.listing import DirectoryLister


def _as_outcome(func):
    @wraps(func)
    def wrapper(self, *args, **kwargs) -> Outcome:
        try:
            return Outcome(Status.OK, func(self, *args, **kwargs))
        except CatalogNotReadyError as e:
            return Outcome(Status.NOT_READY, error=str(e))
        except (ScanNotFoundError, FileNotInCatalogError) as e:
            return Outcome(Status.NOT_FOUND, error=str(e))
        except (FileCatalogError, OSError, ValueError) as e:
            logging.exception(f"{func.__name__} failed")
            return Outcome(Status.ERROR, error=str(e))
    return wrapper


class CatalogService:
    def __init__(self, catalog: Optional[FileCatalog], lister: Optional[DirectoryLister] = None):
        # catalog may be None while the host is still starting up
        self.catalog = catalog
        self.lister = lister or DirectoryLister()

    def _catalog(self) -> FileCatalog:
        if self.catalog is None or not self.catalog.is_ready:
            raise CatalogNotReadyError("Database not initialized")
        return self.catalog

    @_as_outcome
    def scan_directory(self, dir_path: str, recursive: bool = False):
        """Lists dir_path and ingests it. Value: {scan_id, files, stats}."""
        catalog = self._catalog()
        started = time.perf_counter()
        entries = self.lister.list_entries(Path(dir_path), recursive=recursive)
        if not entries:
            return {'scan_id': None, 'files': [], 'stats': {'duration': time.perf_counter() - started}}

        scan_id = catalog.add_scan(dir_path, entries)
        files = catalog.get_files_by_scan(scan_id)
        return {
            'scan_id': scan_id,
            'files': files,
            'stats': {
                'total_files': sum(1 for f in files if not f.is_directory),
                'total_folders': sum(1 for f in files if f.is_directory),
                'total_size': sum(f.size for f in files),
                'extractable_files': sum(1 for f in files if f.extractable),
                'duration': time.perf_counter() - started,
            },
        }

    @_as_outcome
    def add_scan(self, root_path, files):
        return self._catalog().add_scan(root_path, files)

    @_as_outcome
    def search(self, query, limit=config.DEFAULT_SEARCH_LIMIT):
        return self._catalog().search(query, limit)

    @_as_outcome
    def get_files_by_scan(self, scan_id):
        return self._catalog().get_files_by_scan(scan_id)

    @_as_outcome
    def get_latest_files(self):
        return self._catalog().get_latest_files()

    @_as_outcome
    def get_recent_scans(self, limit=config.DEFAULT_RECENT_SCANS):
        return self._catalog().get_recent_scans(limit)

    @_as_outcome
    def get_stats(self):
        return self._catalog().get_stats()

    @_as_outcome
    def delete_scan(self, scan_id):
        return self._catalog().delete_scan(scan_id)

    @_as_outcome
    def clear_database(self):
        removed_files, removed_scans = self._catalog().clear_database()
        return {'removed_files': removed_files, 'removed_scans': removed_scans}

    @_as_outcome
    def cleanup_old_scans(self, keep_count=config.DEFAULT_KEEP_COUNT):
        return self._catalog().cleanup_old_scans(keep_count)

    @_as_outcome
    def get_file_details(self, path):
        return self._catalog().get_file_details(path)

    @_as_outcome
    def export_content(self):
        return self._catalog().export_content()
