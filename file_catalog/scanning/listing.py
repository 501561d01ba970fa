"""
Directory listing for the host process.

The catalog itself never walks the filesystem; this module produces the flat
RawFile list that FileCatalog.add_scan consumes.
"""
import os
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from .. import config
from ..models import RawFile


def normalize_path(file_path: str) -> str:
    return os.path.normpath(file_path)


def should_skip(name: str) -> bool:
    """System files, hidden entries and recycle-bin style names are never listed."""
    if name.startswith('.') or name.startswith('$'):
        return True
    return any(skip in name for skip in config.SKIP_NAMES)


class DirectoryLister:
    def __init__(self, max_items: int = config.MAX_LISTING_ITEMS):
        self.max_items = max_items

    def list_entries(self, root: Path, recursive: bool = False) -> List[RawFile]:
        """
        Lists entries under root (one level unless recursive), at most max_items.
        Unreadable directories and entries are logged and skipped.
        """
        entries: List[RawFile] = []
        for entry in self._iter_entries(Path(root), recursive):
            entries.append(entry)
            if len(entries) >= self.max_items:
                logging.info(f"Listing of {root} capped at {self.max_items} entries")
                break

        logging.info(f"Directory listing complete: {root} - {len(entries)} entries")
        return entries

    def _iter_entries(self, root: Path, recursive: bool) -> Iterator[RawFile]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    dir_entries = list(it)
            except OSError as e:
                logging.warning(f"Cannot list {current}: {e}")
                continue

            # Sort for stable traversal order
            dir_entries.sort(key=lambda e: e.name.lower())

            subdirs = []
            for e in dir_entries:
                if should_skip(e.name):
                    continue
                raw = self._to_raw_file(e)
                if raw is None:
                    continue
                if raw.is_directory and recursive:
                    subdirs.append(Path(e.path))
                yield raw

            # Reversed so we descend into A before Z
            stack.extend(reversed(subdirs))

    def _to_raw_file(self, entry: os.DirEntry) -> Optional[RawFile]:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            st = entry.stat(follow_symlinks=False)
        except OSError as e:
            logging.debug(f"Cannot stat {entry.path}: {e}")
            return None

        # st_birthtime only exists on some platforms
        created = getattr(st, 'st_birthtime', st.st_ctime)
        return RawFile(
            name=entry.name,
            path=normalize_path(entry.path),
            is_directory=is_dir,
            size=0 if is_dir else st.st_size,
            modified_time=datetime.fromtimestamp(st.st_mtime),
            created_time=datetime.fromtimestamp(created),
        )
