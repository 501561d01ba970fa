import logging
import threading
import time
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from . import config
from .database.snapshot import SnapshotStore
from .database.writer import SnapshotWriter
from .exceptions import CatalogNotReadyError, ScanNotFoundError, FileNotInCatalogError
from .indexing.builder import CatalogIndex, build_index
from .models import RawFile, FileRecord, Scan, SearchHit, CatalogStats
from .scanning.ingest import ScanIdAllocator, ScanIngestor, summarize_scan, is_under_root
from .search.engine import SearchEngine


class CatalogView(NamedTuple):
    """One consistent generation of the catalog. Replaced, never modified."""
    scans: Tuple[Scan, ...]
    records: Tuple[FileRecord, ...]
    index: CatalogIndex


class FileCatalog:
    """
    Owns the catalog state, its indexes and its snapshot.

    Mutations are serialized by a single lock and publish a new CatalogView
    (records + freshly built index) in one reference swap. Searches read
    whichever view is current and never take the lock.
    """

    def __init__(self,
                 data_dir: Path,
                 ingestor: Optional[ScanIngestor] = None,
                 snapshot_name: str = config.SNAPSHOT_FILENAME,
                 flush_delay: float = config.FLUSH_DELAY_SECONDS):
        self.data_dir = Path(data_dir)
        self.store = SnapshotStore(self.data_dir / snapshot_name)
        self.writer = SnapshotWriter(self.store, delay=flush_delay)
        self.ingestor = ingestor or ScanIngestor()
        self.id_allocator = ScanIdAllocator()

        self._mutation_lock = threading.Lock()
        self._view: Optional[CatalogView] = None

    # --- Lifecycle ---

    def open(self) -> 'FileCatalog':
        if self._view is not None:
            return self

        scans, files = self.store.load()
        with self._mutation_lock:
            self._publish(scans, files)
        if scans:
            self.id_allocator.bump_floor(max(s.id for s in scans))
        self.writer.start()
        return self

    def close(self):
        """Releases the catalog, then drains pending snapshot writes."""
        # Mutations racing with close see no view and stop before scheduling a write
        with self._mutation_lock:
            self._view = None
        self.writer.close()

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def is_ready(self) -> bool:
        return self._view is not None

    # --- Mutations ---

    def add_scan(self,
                 root_path: str,
                 raw_files: Sequence[RawFile],
                 cancel_event: Optional[threading.Event] = None,
                 show_progress: bool = False) -> int:
        """
        Ingests one scan of root_path and returns its id.

        Existing scans and records at or below root_path are superseded.
        The snapshot write is queued, not awaited.
        """
        self._require_view()
        started = time.perf_counter()
        scan_id = self.id_allocator.next_id()

        # Extraction runs outside the lock so searches keep being served
        records = self.ingestor.extract_records(raw_files, scan_id, cancel_event, show_progress)

        with self._mutation_lock:
            view = self._require_view()
            kept_files = [f for f in view.records if not is_under_root(f.path, root_path)]
            kept_scans = [s for s in view.scans if not is_under_root(s.root_path, root_path)]

            scan = summarize_scan(
                scan_id, root_path, records,
                scan_date=datetime.now(UTC),
                duration_seconds=time.perf_counter() - started,
            )
            new_view = self._publish(kept_scans + [scan], kept_files + records)
            self.writer.schedule(new_view.scans, new_view.records)

        replaced = len(view.records) - len(kept_files)
        logging.info(
            f"Scan {scan_id} stored: {len(records)} entries, {scan.extractable_files} with content, "
            f"{replaced} superseded records removed"
        )
        return scan_id

    def delete_scan(self, scan_id: int) -> int:
        """Removes one scan and its records. Returns the number of records removed."""
        with self._mutation_lock:
            view = self._require_view()
            if not any(s.id == scan_id for s in view.scans):
                raise ScanNotFoundError(f"Scan {scan_id} not found")

            kept_files = [f for f in view.records if f.scan_id != scan_id]
            kept_scans = [s for s in view.scans if s.id != scan_id]
            self._persist_now(self._publish(kept_scans, kept_files))

        removed = len(view.records) - len(kept_files)
        logging.info(f"Scan {scan_id} deleted: {removed} records removed")
        return removed

    def clear_database(self) -> Tuple[int, int]:
        """Drops everything. Returns (removed_files, removed_scans)."""
        with self._mutation_lock:
            view = self._require_view()
            self._persist_now(self._publish([], []))

        logging.info(f"Catalog cleared: {len(view.records)} records, {len(view.scans)} scans removed")
        return len(view.records), len(view.scans)

    def cleanup_old_scans(self, keep_count: int = config.DEFAULT_KEEP_COUNT) -> int:
        """
        Retention: keeps the keep_count most recent scans (by scan_date) and
        drops every record that does not belong to one of them.
        Returns the number of records removed.
        """
        if keep_count < 0:
            raise ValueError(f"keep_count must be >= 0, got {keep_count}")

        with self._mutation_lock:
            view = self._require_view()
            if len(view.scans) <= keep_count:
                return 0

            scans_to_keep = _newest_first(view.scans)[:keep_count]
            keep_ids = {s.id for s in scans_to_keep}
            kept_files = [f for f in view.records if f.scan_id in keep_ids]
            self._persist_now(self._publish(scans_to_keep, kept_files))

        removed = len(view.records) - len(kept_files)
        logging.info(f"Retention cleanup: kept {len(scans_to_keep)} scans, removed {removed} records")
        return removed

    # --- Queries ---

    def search(self, query: str, limit: int = config.DEFAULT_SEARCH_LIMIT) -> List[SearchHit]:
        view = self._require_view()
        started = time.perf_counter()
        hits = SearchEngine(view.records, view.index).search(query, limit)
        logging.info(f"Search '{query}': {len(hits)} results in {(time.perf_counter() - started) * 1000:.1f}ms")
        return hits

    def get_files_by_scan(self, scan_id: int) -> List[FileRecord]:
        view = self._require_view()
        return [view.records[i] for i in view.index.scan_index.get(scan_id, ())]

    def get_scan(self, scan_id: int) -> Scan:
        view = self._require_view()
        for scan in view.scans:
            if scan.id == scan_id:
                return scan
        raise ScanNotFoundError(f"Scan {scan_id} not found")

    def get_latest_files(self) -> List[FileRecord]:
        recent = self.get_recent_scans(1)
        if not recent:
            return []
        return self.get_files_by_scan(recent[0].id)

    def get_recent_scans(self, limit: int = config.DEFAULT_RECENT_SCANS) -> List[Scan]:
        view = self._require_view()
        return _newest_first(view.scans)[:limit]

    def get_file_details(self, path: str) -> FileRecord:
        view = self._require_view()
        for rec in view.records:
            if rec.path == path:
                return rec
        raise FileNotInCatalogError(f"File not found in catalog: {path}")

    def get_stats(self) -> CatalogStats:
        view = self._require_view()
        records = view.records
        extractable = sum(1 for r in records if r.extractable)
        total_content = sum(r.content_length for r in records)

        return CatalogStats(
            total_files=sum(1 for r in records if not r.is_directory),
            total_folders=sum(1 for r in records if r.is_directory),
            total_scans=len(view.scans),
            total_size=sum(r.size for r in records),
            extractable_files=extractable,
            total_content_length=total_content,
            average_content_length=round(total_content / extractable) if extractable else 0,
            snapshot_size=self.store.size_bytes(),
            index_stats=view.index.stats(),
        )

    def export_content(self) -> Dict[str, Any]:
        """Full catalog dump: scans, records and stats."""
        view = self._require_view()
        return {
            'scans': list(view.scans),
            'files': list(view.records),
            'stats': self.get_stats(),
        }

    # --- Internal Helpers ---

    def _require_view(self) -> CatalogView:
        view = self._view
        if view is None:
            raise CatalogNotReadyError("Catalog not initialized; call open() first")
        return view

    def _publish(self, scans: Sequence[Scan], files: Sequence[FileRecord]) -> CatalogView:
        # Caller holds the mutation lock
        records = tuple(files)
        view = CatalogView(scans=tuple(scans), records=records, index=build_index(records))
        self._view = view
        return view

    def _persist_now(self, view: CatalogView):
        # Let any queued background write land first so it cannot overwrite this one
        self.writer.flush()
        self.store.save(view.scans, view.records)


def _newest_first(scans: Sequence[Scan]) -> List[Scan]:
    return sorted(scans, key=lambda s: (s.scan_date, s.id), reverse=True)
