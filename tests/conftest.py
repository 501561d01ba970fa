import pytest
from datetime import datetime, UTC

from file_catalog.core import FileCatalog
from file_catalog.models import FileRecord, RawFile


@pytest.fixture
def catalog(tmp_path):
    """Returns an opened FileCatalog backed by a snapshot in tmp_path/data."""
    c = FileCatalog(tmp_path / "data", flush_delay=0)
    c.open()
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def make_record():
    """Factory for FileRecords with sensible defaults."""
    def _make(name, path=None, scan_id=1, title=None, content='', is_directory=False, size=10, **kwargs):
        ext = '' if is_directory or '.' not in name else '.' + name.rsplit('.', 1)[1].lower()
        return FileRecord(
            name=name,
            path=path or f"/root/{name}",
            is_directory=is_directory,
            size=0 if is_directory else size,
            scan_id=scan_id,
            extension=ext,
            title=title if title is not None else name,
            content=content,
            extractable=bool(content),
            content_length=len(content),
            added_at=datetime(2024, 1, 1, tzinfo=UTC),
            **kwargs,
        )
    return _make


@pytest.fixture
def write_files(tmp_path):
    """Writes {name: text-or-bytes-or-None} under tmp_path/src and returns RawFiles (None = directory)."""
    def _write(layout, root=None):
        root = root or tmp_path / "src"
        root.mkdir(parents=True, exist_ok=True)
        raws = []
        for name, data in layout.items():
            p = root / name
            if data is None:
                p.mkdir()
            elif isinstance(data, bytes):
                p.write_bytes(data)
            else:
                p.write_text(data, encoding="utf-8")
            st = p.stat()
            raws.append(RawFile(
                name=name,
                path=str(p),
                is_directory=data is None,
                size=0 if data is None else st.st_size,
                modified_time=datetime.fromtimestamp(st.st_mtime),
                created_time=datetime.fromtimestamp(st.st_ctime),
            ))
        return root, raws
    return _write
