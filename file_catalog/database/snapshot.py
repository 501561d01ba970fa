"""
Snapshot persistence.

The whole catalog lives in one JSON document: {"scans": [...], "files": [...]}.
Writes go to a temp file which is then renamed over the canonical path, so a
reader never observes a partially written snapshot.
"""
import json
import logging
import os
import time
from pathlib import Path
from typing import List, Sequence, Tuple

from .. import config
from ..exceptions import SnapshotError, SnapshotWriteError
from ..models import FileRecord, Scan


class SnapshotStore:
    def __init__(self, snapshot_path: Path):
        self.snapshot_path = Path(snapshot_path)
        self.temp_path = self.snapshot_path.with_name(self.snapshot_path.name + '.tmp')

    def load(self) -> Tuple[List[Scan], List[FileRecord]]:
        """
        Reads the snapshot from disk.
        A missing or unreadable snapshot yields an empty catalog, and a fresh
        empty snapshot is written in its place.
        """
        try:
            scans, files = self._read()
            logging.info(f"Catalog loaded: {len(files)} files, {len(scans)} scans from {self.snapshot_path}")
            return scans, files
        except FileNotFoundError:
            logging.info(f"No snapshot at {self.snapshot_path}, creating a new catalog.")
        except SnapshotError as e:
            logging.warning(f"Snapshot unreadable, starting with an empty catalog: {e}")

        self.save([], [])
        return [], []

    def save(self, scans: Sequence[Scan], files: Sequence[FileRecord]):
        """
        Atomically replaces the snapshot.

        Raises:
            SnapshotWriteError if every attempt fails.
        """
        payload = {
            'scans': [s.to_dict() for s in scans],
            'files': [f.to_dict() for f in files],
        }

        last_error = None
        for attempt in range(1, config.SNAPSHOT_WRITE_RETRIES + 1):
            try:
                self._write(payload)
                logging.debug(f"Snapshot written: {len(files)} files, {len(scans)} scans")
                return
            except (OSError, TypeError, ValueError) as e:
                last_error = e
                logging.error(f"Snapshot write failed (attempt {attempt}/{config.SNAPSHOT_WRITE_RETRIES}): {e}")
                if attempt < config.SNAPSHOT_WRITE_RETRIES:
                    time.sleep(config.SNAPSHOT_RETRY_DELAY)

        raise SnapshotWriteError(f"Could not write snapshot {self.snapshot_path}: {last_error}") from last_error

    def size_bytes(self) -> int:
        try:
            return self.snapshot_path.stat().st_size
        except OSError:
            return 0

    # --- Internal Helpers ---

    def _read(self) -> Tuple[List[Scan], List[FileRecord]]:
        try:
            with self.snapshot_path.open('r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise
        except (OSError, ValueError) as e:
            raise SnapshotError(f"Cannot read {self.snapshot_path}: {e}") from e

        try:
            scans = [Scan.from_dict(s) for s in data['scans']]
            files = [FileRecord.from_dict(f) for f in data['files']]
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Malformed snapshot {self.snapshot_path}: {e}") from e

        return scans, files

    def _write(self, payload: dict):
        self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            # ASCII output keeps surrogate-escaped file names (undecodable on disk) writable
            with self.temp_path.open('w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(self.temp_path, self.snapshot_path)
        except (OSError, TypeError, ValueError):
            self.temp_path.unlink(missing_ok=True)
            raise
