import csv
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .core import FileCatalog
from .models import FileRecord, SearchHit

HEADERS = [
    "Path",
    "Name",
    "Type",
    "Extension",
    "Size",
    "Modified",
    "Title",
    "Extractable",
    "Words",
    "Notes",
]


class ReportGenerator:
    def __init__(self, catalog: FileCatalog):
        self.catalog = catalog

    def export_scan(self, scan_id: int, output_csv: Path) -> int:
        """Writes every record of one scan to CSV. Returns the row count."""
        records = self.catalog.get_files_by_scan(scan_id)
        logging.info(f"Exporting scan {scan_id} -> {output_csv}")
        return self._write(output_csv, HEADERS, (self._row(r) for r in records))

    def export_search(self, query: str, output_csv: Path, limit: Optional[int] = None) -> int:
        """Writes ranked search results to CSV with their relevance score first."""
        hits: List[SearchHit] = self.catalog.search(query) if limit is None else self.catalog.search(query, limit)
        logging.info(f"Exporting {len(hits)} results for '{query}' -> {output_csv}")
        return self._write(output_csv, ["Score"] + HEADERS, ([h.score] + self._row(h.record) for h in hits))

    def _write(self, output_csv: Path, headers: list, rows: Iterable[list]) -> int:
        count = 0
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(headers)
            for row in rows:
                writer.writerow(row)
                count += 1

        logging.info(f"Report complete. Wrote {count} rows.")
        return count

    def _row(self, rec: FileRecord) -> list:
        kind = "Folder" if rec.is_directory else (rec.document_type or "File")
        modified = rec.modified_time.isoformat() if rec.modified_time else ""
        return [
            rec.path,
            rec.name,
            kind,
            rec.extension,
            rec.size,
            modified,
            rec.title,
            "yes" if rec.extractable else "no",
            rec.word_count,
            rec.extraction_reason,
        ]
