import locale
import logging
from typing import Dict, Iterable, List, Sequence, Set

from .. import config
from ..indexing.builder import CatalogIndex
from ..models import FileRecord, SearchHit


class SearchEngine:
    """
    Relevance-ranked lookup over one consistent (records, index) pair.
    Read-only: never mutates either structure.
    """

    def __init__(self, records: Sequence[FileRecord], index: CatalogIndex):
        self.records = records
        self.index = index

    def search(self, query: str, limit: int = config.DEFAULT_SEARCH_LIMIT) -> List[SearchHit]:
        if not query or len(query) < config.MIN_QUERY_LENGTH:
            return []

        query_lower = query.lower()
        candidates = self.find_candidates(query_lower)

        hits = [
            SearchHit(record=self.records[ordinal], score=self.score(self.records[ordinal], query_lower))
            for ordinal in candidates
        ]
        hits.sort(key=_rank_key)

        logging.debug(f"Search '{query}': {len(candidates)} candidates")
        return hits[:limit]

    def find_candidates(self, query_lower: str) -> Set[int]:
        # Extension queries bypass every other index
        if query_lower.startswith('.'):
            return set(self.index.extension_index.get(query_lower, ()))

        candidates: Set[int] = set(self.index.exact_name_index.get(query_lower, ()))
        for token_index in (self.index.name_index, self.index.title_index, self.index.content_index):
            _collect_matches(token_index, query_lower, candidates)

        for segment, ordinals in self.index.path_index.items():
            if query_lower in segment:
                candidates.update(ordinals)

        return candidates

    def score(self, rec: FileRecord, query_lower: str) -> int:
        """Additive: name, title and content signals are scored independently."""
        score = 0
        name = rec.name.lower()
        if name == query_lower:
            score += config.SCORE_NAME_EXACT
        elif query_lower in name:
            score += config.SCORE_NAME_PARTIAL

        if rec.title and query_lower in rec.title.lower():
            score += config.SCORE_TITLE

        if rec.content and query_lower in rec.content.lower():
            score += config.SCORE_CONTENT

        return score


def _collect_matches(token_index: Dict[str, Iterable[int]], query_lower: str, out: Set[int]):
    # Exact token hit first, then any key containing the query
    exact = token_index.get(query_lower)
    if exact:
        out.update(exact)

    for key, ordinals in token_index.items():
        if query_lower in key and key != query_lower:
            out.update(ordinals)


def _rank_key(hit: SearchHit):
    # score desc -> directories first -> name (locale collation, then raw as tie-break)
    rec = hit.record
    return (-hit.score, not rec.is_directory, locale.strxfrm(rec.name.casefold()), rec.name)
