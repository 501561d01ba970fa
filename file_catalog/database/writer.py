"""
Background snapshot writes.
"""
import logging
import threading
import time
from typing import Optional, Sequence, Tuple

from .. import config
from ..exceptions import SnapshotWriteError
from ..models import FileRecord, Scan
from .snapshot import SnapshotStore


class SnapshotWriter:
    """
    Single worker thread that persists the latest catalog state off the
    caller's critical path.

    Requests are coalesced: only the newest (scans, files) pair is written.
    Anything still pending when the process dies is lost; the snapshot is a
    cache of scan results, not a transaction log.
    """

    def __init__(self, store: SnapshotStore, delay: float = config.FLUSH_DELAY_SECONDS):
        self.store = store
        self.delay = delay
        self.last_error: Optional[SnapshotWriteError] = None

        self._cond = threading.Condition()
        self._payload: Optional[Tuple[Sequence[Scan], Sequence[FileRecord]]] = None
        self._writing = False
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self._thread is not None:
            return
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="snapshot-writer", daemon=True)
        self._thread.start()

    def schedule(self, scans: Sequence[Scan], files: Sequence[FileRecord]):
        """Queues a write of this state. Callers must pass immutable sequences."""
        with self._cond:
            if self._closed:
                raise RuntimeError("SnapshotWriter is closed")
            self._payload = (tuple(scans), tuple(files))
            self._cond.notify_all()

    @property
    def pending(self) -> bool:
        """True while a scheduled write has not reached disk yet."""
        with self._cond:
            return self._payload is not None or self._writing

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Blocks until queued writes have been attempted. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._payload is None and not self._writing, timeout)

    def close(self):
        if self._thread is None:
            return
        self.flush()
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._thread.join()
        self._thread = None

    def _run(self):
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._payload is not None or self._closed)
                if self._payload is None and self._closed:
                    return
                self._writing = True

            # Debounce: later schedule() calls within the delay replace the payload
            time.sleep(self.delay)

            with self._cond:
                payload, self._payload = self._payload, None

            try:
                if payload is not None:
                    self.store.save(*payload)
                    self.last_error = None
            except SnapshotWriteError as e:
                # Catalog stays correct in memory; the next mutation retries
                logging.error(f"Background snapshot write failed: {e}")
                self.last_error = e
            finally:
                with self._cond:
                    self._writing = False
                    self._cond.notify_all()
