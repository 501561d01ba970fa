"""
Inverted index construction.

The index is rebuilt wholesale from the record sequence after every catalog
mutation; ordinals (list positions) are the join key back to the records.
"""
import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Set, Sequence

from .. import config
from ..models import FileRecord, IndexStats
from .tokenizer import index_terms

PATH_SEPARATORS_RE = re.compile(r'[\\/]')


@dataclass
class CatalogIndex:
    name_index: Dict[str, Set[int]] = field(default_factory=dict)
    title_index: Dict[str, Set[int]] = field(default_factory=dict)
    content_index: Dict[str, Set[int]] = field(default_factory=dict)
    extension_index: Dict[str, List[int]] = field(default_factory=dict)
    path_index: Dict[str, Set[int]] = field(default_factory=dict)
    scan_index: Dict[int, List[int]] = field(default_factory=dict)
    # Whole lower-cased names, so short or punctuated names still match exactly
    exact_name_index: Dict[str, List[int]] = field(default_factory=dict)

    def stats(self) -> IndexStats:
        return IndexStats(
            name_entries=len(self.name_index),
            content_entries=len(self.content_index),
            title_entries=len(self.title_index),
            extensions=len(self.extension_index),
            paths=len(self.path_index),
            scans=len(self.scan_index),
        )


def build_index(records: Sequence[FileRecord]) -> CatalogIndex:
    """
    Builds a fresh CatalogIndex for `records`.
    Never patches an existing index; callers swap the result in.
    """
    name_index: Dict[str, Set[int]] = defaultdict(set)
    title_index: Dict[str, Set[int]] = defaultdict(set)
    content_index: Dict[str, Set[int]] = defaultdict(set)
    extension_index: Dict[str, List[int]] = defaultdict(list)
    path_index: Dict[str, Set[int]] = defaultdict(set)
    scan_index: Dict[int, List[int]] = defaultdict(list)
    exact_name_index: Dict[str, List[int]] = defaultdict(list)

    for ordinal, rec in enumerate(records):
        _index_text(rec.name, name_index, ordinal)
        exact_name_index[rec.name.lower()].append(ordinal)

        if rec.title and rec.title != rec.name:
            _index_text(rec.title, title_index, ordinal)

        if rec.content:
            _index_text(rec.content, content_index, ordinal)

        if rec.extension:
            extension_index[rec.extension].append(ordinal)

        for segment in path_segments(rec.path):
            path_index[segment].add(ordinal)

        scan_index[rec.scan_id].append(ordinal)

    index = CatalogIndex(
        name_index=dict(name_index),
        title_index=dict(title_index),
        content_index=dict(content_index),
        extension_index=dict(extension_index),
        path_index=dict(path_index),
        scan_index=dict(scan_index),
        exact_name_index=dict(exact_name_index),
    )
    logging.debug(
        f"Index built: {len(index.name_index)} name, {len(index.content_index)} content, "
        f"{len(index.title_index)} title keys over {len(records)} records"
    )
    return index


def path_segments(path: str) -> List[str]:
    """Lower-cased path components long enough to be meaningful."""
    return [
        part for part in PATH_SEPARATORS_RE.split(path.lower())
        if len(part) >= config.MIN_PATH_SEGMENT_LENGTH
    ]


def _index_text(text: str, index: Dict[str, Set[int]], ordinal: int):
    for term in index_terms(text):
        index[term].add(ordinal)
