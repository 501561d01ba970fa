from dataclasses import dataclass, field, asdict, fields
from datetime import datetime
from enum import Enum
from typing import Optional, Any, Dict


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _str_to_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class RawFile:
    """
    One entry handed over by the directory-listing collaborator.
    """
    name: str
    path: str
    is_directory: bool
    size: int
    modified_time: Optional[datetime] = None
    created_time: Optional[datetime] = None


@dataclass(frozen=True)
class ExtractionResult:
    title: str
    content: str = ''
    extractable: bool = False
    content_length: int = 0
    word_count: int = 0
    reason: str = ''
    document_type: str = ''


@dataclass(frozen=True)
class FileRecord:
    """
    A catalogued filesystem entry plus the content extracted at ingestion.
    Frozen: title and content are never re-extracted in place.
    """
    name: str
    path: str
    is_directory: bool
    size: int
    scan_id: int
    extension: str
    title: str

    modified_time: Optional[datetime] = None
    created_time: Optional[datetime] = None

    # Extraction output
    content: str = ''
    extractable: bool = False
    content_length: int = 0
    word_count: int = 0
    extraction_reason: str = ''
    document_type: str = ''

    added_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ('modified_time', 'created_time', 'added_at'):
            data[key] = _dt_to_str(data[key])
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileRecord':
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for key in ('modified_time', 'created_time', 'added_at'):
            kwargs[key] = _str_to_dt(kwargs.get(key))
        return cls(**kwargs)


@dataclass(frozen=True)
class Scan:
    id: int
    root_path: str
    scan_date: datetime
    total_files: int = 0
    total_folders: int = 0
    total_size: int = 0
    extractable_files: int = 0
    total_content_length: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['scan_date'] = _dt_to_str(self.scan_date)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scan':
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs['scan_date'] = _str_to_dt(kwargs['scan_date'])
        return cls(**kwargs)


@dataclass(frozen=True)
class SearchHit:
    record: FileRecord
    score: int


@dataclass(frozen=True)
class IndexStats:
    name_entries: int = 0
    content_entries: int = 0
    title_entries: int = 0
    extensions: int = 0
    paths: int = 0
    scans: int = 0


@dataclass(frozen=True)
class CatalogStats:
    total_files: int
    total_folders: int
    total_scans: int
    total_size: int
    extractable_files: int
    total_content_length: int
    average_content_length: int
    snapshot_size: int
    index_stats: IndexStats = field(default_factory=IndexStats)


class Status(Enum):
    OK = 'ok'
    NOT_FOUND = 'not_found'
    NOT_READY = 'not_ready'
    ERROR = 'error'


@dataclass(frozen=True)
class Outcome:
    """
    Result envelope returned by the service facade.
    """
    status: Status
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is Status.OK
