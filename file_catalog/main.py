import argparse
import logging
import sys
from pathlib import Path

from . import config
from .core import FileCatalog
from .exceptions import FileCatalogError, ScanNotFoundError, FileNotInCatalogError
from .reporting import ReportGenerator
from .scanning.listing import DirectoryLister


def setup_logging(data_dir: Path, verbose: bool):
    """Sets up logging to both console and a file in the data directory."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Create data dir if it doesn't exist so we can log there
    data_dir.mkdir(parents=True, exist_ok=True)
    log_file = data_dir / "file_catalog.log"

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="File Catalog: scan directories and search their contents")
    p.add_argument("--data-dir", type=Path, default=config.DEFAULT_DATA_DIR,
                   help=f"Directory holding the catalog snapshot (default: {config.DEFAULT_DATA_DIR})")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a directory into the catalog")
    scan.add_argument("path", type=Path, help="Directory to scan")
    scan.add_argument("-r", "--recursive", action="store_true", help="Descend into subdirectories")
    scan.add_argument("--max-items", type=int, default=config.MAX_LISTING_ITEMS, help="Cap on listed entries")

    search = sub.add_parser("search", help="Search the catalog (prefix with '.' for extensions)")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=20)

    history = sub.add_parser("history", help="List recent scans")
    history.add_argument("--limit", type=int, default=config.DEFAULT_RECENT_SCANS)

    sub.add_parser("stats", help="Show catalog statistics")

    details = sub.add_parser("details", help="Show one catalogued file")
    details.add_argument("path")

    delete = sub.add_parser("delete", help="Delete a scan and its files")
    delete.add_argument("scan_id", type=int)

    sub.add_parser("clear", help="Remove every scan and file")

    cleanup = sub.add_parser("cleanup", help="Keep only the most recent scans")
    cleanup.add_argument("--keep", type=int, default=config.DEFAULT_KEEP_COUNT, help="Number of scans to keep (>= 0)")

    export = sub.add_parser("export-csv", help="Export a scan or search results to CSV")
    export.add_argument("output", type=Path)
    group = export.add_mutually_exclusive_group(required=True)
    group.add_argument("--scan-id", type=int)
    group.add_argument("--query")

    return p.parse_args(argv)


def run_command(args, catalog: FileCatalog) -> int:
    if args.command == "scan":
        root = args.path.resolve()
        entries = DirectoryLister(max_items=args.max_items).list_entries(root, recursive=args.recursive)
        if not entries:
            logging.warning(f"Nothing to catalog under {root}")
            return 0
        scan_id = catalog.add_scan(str(root), entries, show_progress=True)
        scan = catalog.get_scan(scan_id)
        print(f"Scan {scan_id}: {scan.total_files} files, {scan.total_folders} folders, "
              f"{scan.extractable_files} with content ({scan.duration_seconds:.1f}s)")

    elif args.command == "search":
        hits = catalog.search(args.query, args.limit)
        for hit in hits:
            marker = "/" if hit.record.is_directory else ""
            print(f"{hit.score:4d}  {hit.record.path}{marker}  [{hit.record.title}]")
        print(f"{len(hits)} result(s)")

    elif args.command == "history":
        for scan in catalog.get_recent_scans(args.limit):
            print(f"{scan.id}  {scan.scan_date.isoformat()}  {scan.root_path}  "
                  f"files={scan.total_files} folders={scan.total_folders} size={scan.total_size}")

    elif args.command == "stats":
        stats = catalog.get_stats()
        print(f"Scans:            {stats.total_scans}")
        print(f"Files / folders:  {stats.total_files} / {stats.total_folders}")
        print(f"Total size:       {stats.total_size} bytes")
        print(f"With content:     {stats.extractable_files} (avg {stats.average_content_length} chars)")
        print(f"Snapshot size:    {stats.snapshot_size} bytes")
        idx = stats.index_stats
        print(f"Index keys:       name={idx.name_entries} title={idx.title_entries} content={idx.content_entries} "
              f"ext={idx.extensions} path={idx.paths} scans={idx.scans}")

    elif args.command == "details":
        rec = catalog.get_file_details(args.path)
        for key, value in rec.to_dict().items():
            if key == "content":
                value = value[:200]
            print(f"{key:18} {value}")

    elif args.command == "delete":
        removed = catalog.delete_scan(args.scan_id)
        print(f"Deleted scan {args.scan_id}: {removed} file(s) removed")

    elif args.command == "clear":
        removed_files, removed_scans = catalog.clear_database()
        print(f"Cleared {removed_files} file(s) and {removed_scans} scan(s)")

    elif args.command == "cleanup":
        removed = catalog.cleanup_old_scans(args.keep)
        print(f"Removed {removed} file(s) from old scans")

    elif args.command == "export-csv":
        reporter = ReportGenerator(catalog)
        if args.scan_id is not None:
            count = reporter.export_scan(args.scan_id, args.output)
        else:
            count = reporter.export_search(args.query, args.output)
        print(f"Wrote {count} row(s) to {args.output}")

    return 0


def main(argv=None):
    args = parse_args(argv)
    data_dir = args.data_dir.expanduser().resolve()
    setup_logging(data_dir, args.verbose)

    try:
        with FileCatalog(data_dir) as catalog:
            return run_command(args, catalog)
    except (ScanNotFoundError, FileNotInCatalogError, ValueError) as e:
        logging.error(str(e))
        return 1
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1
    except FileCatalogError:
        logging.exception("Fatal catalog error.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
