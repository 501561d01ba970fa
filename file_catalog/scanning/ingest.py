import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, Future
from datetime import datetime, UTC
from typing import List, Optional, Sequence

from tqdm import tqdm

from .. import config
from ..exceptions import ScanCancelledError
from ..extraction.content import ContentExtractor
from ..models import RawFile, FileRecord, Scan, ExtractionResult


class ScanIdAllocator:
    """
    Hands out time-derived scan ids (epoch milliseconds) that are unique and
    strictly increasing, even when several scans start within the same millisecond.
    """

    def __init__(self, floor: int = 0):
        self._last = floor
        self._lock = threading.Lock()

    def bump_floor(self, floor: int):
        """Makes sure future ids are larger than `floor` (e.g. ids loaded from disk)."""
        with self._lock:
            self._last = max(self._last, floor)

    def next_id(self) -> int:
        with self._lock:
            candidate = time.time_ns() // 1_000_000
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate


class ScanIngestor:
    def __init__(self,
                 extractor: Optional[ContentExtractor] = None,
                 batch_size: int = config.EXTRACTION_BATCH_SIZE):
        self.extractor = extractor or ContentExtractor()
        self.batch_size = batch_size

    def extract_records(self,
                        raw_files: Sequence[RawFile],
                        scan_id: int,
                        cancel_event: Optional[threading.Event] = None,
                        show_progress: bool = False) -> List[FileRecord]:
        """
        Extracts every file in fixed-size batches.

        Each batch runs concurrently and is fully settled before the next one
        starts. A file whose extraction raises still produces a (non-extractable)
        record; the batch and the scan carry on.

        Returns records in input order.
        """
        logging.info(f"Content extraction started: {len(raw_files)} files")
        records: List[FileRecord] = []

        with ThreadPoolExecutor(max_workers=self.batch_size) as executor, \
                tqdm(total=len(raw_files), desc="Extracting", disable=not show_progress) as progress:
            for start in range(0, len(raw_files), self.batch_size):
                if cancel_event is not None and cancel_event.is_set():
                    raise ScanCancelledError(f"Scan {scan_id} cancelled after {start} files")

                batch = raw_files[start:start + self.batch_size]
                futures = [executor.submit(self._extract_one, raw) for raw in batch]

                for raw, future in zip(batch, futures):
                    records.append(self._settle(raw, future, scan_id))

                progress.update(len(batch))
                logging.debug(f"Content extraction progress: {start + len(batch)}/{len(raw_files)}")

        return records

    def _extract_one(self, raw: RawFile) -> ExtractionResult:
        return self.extractor.extract(raw.path, raw.size, raw.modified_time)

    def _settle(self, raw: RawFile, future: Future, scan_id: int) -> FileRecord:
        try:
            result = future.result()
        except Exception as e:
            logging.error(f"Extraction task failed for {raw.path}: {e}")
            result = ExtractionResult(title=raw.name, reason=str(e) or type(e).__name__)
        return build_record(raw, scan_id, result)


def build_record(raw: RawFile, scan_id: int, result: ExtractionResult) -> FileRecord:
    return FileRecord(
        name=raw.name,
        path=raw.path,
        is_directory=raw.is_directory,
        size=0 if raw.is_directory else raw.size,
        modified_time=raw.modified_time,
        created_time=raw.created_time,
        scan_id=scan_id,
        extension=os.path.splitext(raw.name)[1].lower(),
        title=result.title,
        content=result.content,
        extractable=result.extractable,
        content_length=result.content_length,
        word_count=result.word_count,
        extraction_reason='' if result.extractable else result.reason,
        document_type=result.document_type,
        added_at=datetime.now(UTC),
    )


def summarize_scan(scan_id: int,
                   root_path: str,
                   records: Sequence[FileRecord],
                   scan_date: datetime,
                   duration_seconds: float) -> Scan:
    """Aggregate counters for a scan, computed from its own records."""
    return Scan(
        id=scan_id,
        root_path=root_path,
        scan_date=scan_date,
        total_files=sum(1 for r in records if not r.is_directory),
        total_folders=sum(1 for r in records if r.is_directory),
        total_size=sum(r.size for r in records),
        extractable_files=sum(1 for r in records if r.extractable),
        total_content_length=sum(r.content_length for r in records),
        duration_seconds=duration_seconds,
    )


def is_under_root(path: str, root_path: str) -> bool:
    """
    Case-insensitive containment on path-component boundaries:
    '/data/sub' is under '/data', '/data2' is not.
    """
    path_cf = path.casefold()
    root_cf = root_path.casefold().rstrip('/\\')
    if not root_cf:
        # Filesystem root ('/' or '\\') contains everything
        return path_cf.startswith(('/', '\\'))
    if path_cf == root_cf:
        return True
    return path_cf.startswith(root_cf + '/') or path_cf.startswith(root_cf + '\\')
