import os
import sys
import threading

import pytest

from file_catalog import config
from file_catalog.core import FileCatalog
from file_catalog.database.snapshot import SnapshotStore
from file_catalog.exceptions import (
    CatalogNotReadyError, ScanNotFoundError, FileNotInCatalogError, SnapshotWriteError,
)
from file_catalog.models import RawFile
from file_catalog.scanning.listing import DirectoryLister


def virtual_files(root, names):
    """RawFiles that never touch the disk (extension-less names are not read)."""
    return [RawFile(name=n, path=f"{root}/{n}", is_directory=False, size=10) for n in names]


def test_search_scenario(catalog, write_files):
    root, raws = write_files({
        "readme.md": "# Hello",
        "notes.txt": "hello world",
        "photo.png": b"\x89PNG\r\n",
    })

    catalog.add_scan(str(root), raws)
    hits = catalog.search("hello")

    by_name = {h.record.name: h for h in hits}
    assert set(by_name) == {"readme.md", "notes.txt"}
    assert by_name["readme.md"].record.title == "Hello"
    assert by_name["readme.md"].score == config.SCORE_TITLE + config.SCORE_CONTENT
    assert by_name["notes.txt"].score >= config.SCORE_CONTENT


def test_scan_counters_match_records(catalog, write_files):
    root, raws = write_files({"a.txt": "one two", "b.bin": b"\x00\x01", "sub": None})

    scan_id = catalog.add_scan(str(root), raws)
    scan = catalog.get_scan(scan_id)
    records = catalog.get_files_by_scan(scan_id)

    assert scan.total_files == sum(1 for r in records if not r.is_directory) == 2
    assert scan.total_folders == 1
    assert scan.total_size == sum(r.size for r in records)
    assert scan.extractable_files == 1
    assert scan.total_content_length == len("one two")


def test_rescan_supersedes_previous_records(catalog):
    first = catalog.add_scan("/data", virtual_files("/data", ["a", "b", "c"]))
    second = catalog.add_scan("/data", virtual_files("/data", ["a", "d"]))

    assert [s.id for s in catalog.get_recent_scans()] == [second]
    assert catalog.get_files_by_scan(first) == []
    assert sorted(r.name for r in catalog.get_files_by_scan(second)) == ["a", "d"]
    assert catalog.get_stats().total_files == 2


def test_rescan_respects_path_component_boundaries(catalog):
    catalog.add_scan("/data2", virtual_files("/data2", ["x"]))
    catalog.add_scan("/data/sub", virtual_files("/data/sub", ["y"]))
    parent = catalog.add_scan("/DATA", virtual_files("/DATA", ["z"]))

    roots = sorted(s.root_path for s in catalog.get_recent_scans())
    assert roots == ["/DATA", "/data2"]
    assert [r.name for r in catalog.get_files_by_scan(parent)] == ["z"]
    assert catalog.get_stats().total_files == 2


def test_scan_ids_increase(catalog):
    ids = [catalog.add_scan(f"/r{i}", virtual_files(f"/r{i}", ["f"])) for i in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5


def test_cleanup_keeps_most_recent_scans(catalog):
    counts = [1, 2, 3, 4, 5, 6]
    ids = [catalog.add_scan(f"/r{i}", virtual_files(f"/r{i}", [f"f{j}" for j in range(n)]))
           for i, n in enumerate(counts)]

    removed = catalog.cleanup_old_scans(3)

    assert removed == sum(counts[:3])
    assert {s.id for s in catalog.get_recent_scans()} == set(ids[3:])
    remaining = catalog.export_content()["files"]
    assert {r.scan_id for r in remaining} <= set(ids[3:])
    assert len(remaining) == sum(counts[3:])


@pytest.mark.parametrize("keep", [0, 2, 5, 10])
def test_cleanup_leaves_min_of_keep_and_total(catalog, keep):
    for i in range(5):
        catalog.add_scan(f"/r{i}", virtual_files(f"/r{i}", ["a", "b"]))

    catalog.cleanup_old_scans(keep)

    kept = catalog.get_recent_scans(100)
    assert len(kept) == min(keep, 5)
    kept_ids = {s.id for s in kept}
    assert all(r.scan_id in kept_ids for r in catalog.export_content()["files"])


def test_cleanup_rejects_negative_keep(catalog):
    with pytest.raises(ValueError):
        catalog.cleanup_old_scans(-1)


def test_delete_scan(catalog, tmp_path):
    keep = catalog.add_scan("/a", virtual_files("/a", ["one"]))
    drop = catalog.add_scan("/b", virtual_files("/b", ["two", "three"]))

    assert catalog.delete_scan(drop) == 2
    assert [s.id for s in catalog.get_recent_scans()] == [keep]
    assert catalog.search("three") == []

    # synchronous persistence: a fresh reader sees the deletion immediately
    scans, files = SnapshotStore(catalog.store.snapshot_path).load()
    assert [s.id for s in scans] == [keep]
    assert [f.name for f in files] == ["one"]


def test_delete_unknown_scan(catalog):
    with pytest.raises(ScanNotFoundError):
        catalog.delete_scan(12345)


def test_clear_database(catalog):
    catalog.add_scan("/a", virtual_files("/a", ["one", "two"]))
    catalog.add_scan("/b", virtual_files("/b", ["three"]))

    assert catalog.clear_database() == (3, 2)
    assert catalog.get_stats().total_scans == 0
    assert catalog.search("one") == []
    assert catalog.get_latest_files() == []


def test_latest_files_and_recent_scans(catalog):
    catalog.add_scan("/old", virtual_files("/old", ["old_file"]))
    latest = catalog.add_scan("/new", virtual_files("/new", ["new_file"]))

    assert [r.name for r in catalog.get_latest_files()] == ["new_file"]
    assert [s.root_path for s in catalog.get_recent_scans()] == ["/new", "/old"]
    assert [s.id for s in catalog.get_recent_scans(1)] == [latest]


def test_file_details(catalog):
    catalog.add_scan("/a", virtual_files("/a", ["one"]))

    rec = catalog.get_file_details("/a/one")
    assert rec.name == "one"
    assert rec.extraction_reason == config.REASON_UNSUPPORTED

    with pytest.raises(FileNotInCatalogError):
        catalog.get_file_details("/a/missing")


def test_extension_query_returns_exactly_matching_records(catalog):
    catalog.add_scan("/a", virtual_files("/a", ["x.txt", "y.TXT", "txt.md", "z"]))
    names = sorted(h.record.name for h in catalog.search(".txt"))
    assert names == ["x.txt", "y.TXT"]


def test_stats(catalog, write_files):
    root, raws = write_files({"a.txt": "abcd", "b.md": "ab", "c.png": b"\x00" * 10, "d": None})
    catalog.add_scan(str(root), raws)
    catalog.writer.flush()

    stats = catalog.get_stats()

    assert stats.total_files == 3
    assert stats.total_folders == 1
    assert stats.total_scans == 1
    assert stats.total_size == 16
    assert stats.extractable_files == 2
    assert stats.total_content_length == 6
    assert stats.average_content_length == 3
    assert stats.snapshot_size == catalog.store.snapshot_path.stat().st_size
    assert stats.index_stats.extensions == 3
    assert stats.index_stats.scans == 1


def test_snapshot_round_trip_through_reopen(tmp_path, write_files):
    root, raws = write_files({"readme.md": "# Title\nbody", "sub": None})
    data_dir = tmp_path / "data"

    with FileCatalog(data_dir, flush_delay=0) as first:
        scan_id = first.add_scan(str(root), raws)
        before = first.export_content()

    with FileCatalog(data_dir, flush_delay=0) as second:
        after = second.export_content()
        assert after["files"] == before["files"]
        assert set(after["scans"]) == set(before["scans"])
        assert [h.record.name for h in second.search("title")] == ["readme.md"]
        # ids keep increasing after a reload
        assert second.add_scan("/other", virtual_files("/other", ["f"])) > scan_id


def test_background_flush_is_pending_until_written(tmp_path):
    data_dir = tmp_path / "data"
    with FileCatalog(data_dir, flush_delay=0.5) as catalog:
        catalog.add_scan("/a", virtual_files("/a", ["one"]))

        # the durability gap: the scan exists in memory but not yet on disk
        assert catalog.writer.pending
        assert SnapshotStore(catalog.store.snapshot_path).load() == ([], [])

        assert catalog.writer.flush(timeout=5)
        scans, files = SnapshotStore(catalog.store.snapshot_path).load()
        assert [f.name for f in files] == ["one"]


def test_write_failure_keeps_memory_state(catalog, monkeypatch):
    catalog.add_scan("/a", virtual_files("/a", ["one"]))

    def failing_save(scans, files):
        raise SnapshotWriteError("read-only")
    monkeypatch.setattr(catalog.store, "save", failing_save)

    with pytest.raises(SnapshotWriteError):
        catalog.clear_database()
    # in-memory state reflects the mutation even though it was not persisted
    assert catalog.get_stats().total_scans == 0


def test_calls_before_open_are_rejected(tmp_path):
    catalog = FileCatalog(tmp_path / "data")
    assert not catalog.is_ready
    with pytest.raises(CatalogNotReadyError):
        catalog.search("anything")
    with pytest.raises(CatalogNotReadyError):
        catalog.add_scan("/a", virtual_files("/a", ["one"]))


def test_concurrent_searches_during_ingestion(catalog):
    catalog.add_scan("/base", virtual_files("/base", ["stable_file"]))
    errors = []
    stop = threading.Event()

    def searcher():
        while not stop.is_set():
            try:
                hits = catalog.search("stable")
                assert [h.record.name for h in hits] == ["stable_file"]
            except Exception as e:
                errors.append(e)
                return

    threads = [threading.Thread(target=searcher) for _ in range(4)]
    for t in threads:
        t.start()
    try:
        for i in range(10):
            catalog.add_scan(f"/other{i}", virtual_files(f"/other{i}", [f"f{j}" for j in range(15)]))
    finally:
        stop.set()
        for t in threads:
            t.join()

    assert errors == []


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names")
def test_undecodable_file_name_survives_persistence(tmp_path):
    root = tmp_path / "src"
    root.mkdir()
    with open(os.path.join(os.fsencode(root), b"caf\xe9.txt"), "wb") as f:
        f.write(b"bonjour")
    entries = DirectoryLister().list_entries(root)
    data_dir = tmp_path / "data"

    with FileCatalog(data_dir, flush_delay=0) as catalog:
        catalog.add_scan(str(root), entries)
        other = catalog.add_scan("/other", virtual_files("/other", ["f"]))
        assert catalog.writer.flush(timeout=5)
        assert catalog.writer.last_error is None

        catalog.delete_scan(other)
        assert not catalog.store.temp_path.exists()

    with FileCatalog(data_dir, flush_delay=0) as reopened:
        names = [h.record.name for h in reopened.search("bonjour")]
        assert names == [entries[0].name]


def test_close_during_ingestion_stops_the_scan(catalog):
    real_extract = catalog.ingestor.extract_records

    def extract_then_close(*args, **kwargs):
        records = real_extract(*args, **kwargs)
        catalog.close()
        return records
    catalog.ingestor.extract_records = extract_then_close

    with pytest.raises(CatalogNotReadyError):
        catalog.add_scan("/a", virtual_files("/a", ["one"]))
    assert not catalog.is_ready
