"""
Configuration constants for the file catalog.
"""
from pathlib import Path

# --- File Type Definitions ---
# Read fully as text and indexed by content
TEXT_EXTS = {
    '.txt', '.md', '.js', '.ts', '.jsx', '.tsx', '.html', '.htm', '.css',
    '.json', '.xml', '.yml', '.yaml', '.ini', '.cfg', '.log', '.sql',
    '.py', '.java', '.cpp', '.c', '.h', '.cs', '.php', '.rb', '.go',
    '.sh', '.bat', '.ps1', '.vue', '.svelte', '.scss', '.less',
}
# Documents we only derive a title for (no parser)
TITLE_ONLY_EXTS = {'.pdf', '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx'}

# Extension to Kind Mapping
EXT_TO_KIND = {}
for ext in TEXT_EXTS: EXT_TO_KIND[ext] = 'text'
for ext in TITLE_ONLY_EXTS: EXT_TO_KIND[ext] = 'document'

# --- Content Extraction ---
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB, larger files are never read
MAX_CONTENT_LENGTH = 100 * 1024  # characters kept in the catalog
TRUNCATION_MARKER = '...[truncated]'
TITLE_SCAN_LINES = 10
MAX_FIRST_LINE_TITLE = 100
JSON_TITLE_FIELDS = ('title', 'name', 'displayName')

REASON_TOO_LARGE = 'file too large'
REASON_DOCUMENT = 'document parsing not implemented'
REASON_UNSUPPORTED = 'unsupported file type'
REASON_DIRECTORY = 'directory'
REASON_BINARY = 'binary or encoding issue'

# --- Ingestion ---
EXTRACTION_BATCH_SIZE = 10

# --- Indexing ---
MIN_TOKEN_LENGTH = 2
NGRAM_SIZE = 3
MIN_PATH_SEGMENT_LENGTH = 3

# --- Search ---
MIN_QUERY_LENGTH = 2
DEFAULT_SEARCH_LIMIT = 1000
SCORE_NAME_EXACT = 100
SCORE_NAME_PARTIAL = 50
SCORE_TITLE = 30
SCORE_CONTENT = 10

# --- Retention ---
DEFAULT_KEEP_COUNT = 5
DEFAULT_RECENT_SCANS = 10

# --- Persistence ---
DEFAULT_DATA_DIR = Path.home() / '.file_catalog'
SNAPSHOT_FILENAME = 'enhanced_scan_data.json'
SNAPSHOT_WRITE_RETRIES = 3
SNAPSHOT_RETRY_DELAY = 0.05  # seconds between attempts
FLUSH_DELAY_SECONDS = 0.1  # background flush debounce

# --- Directory Listing (host side) ---
MAX_LISTING_ITEMS = 1000
SKIP_NAMES = [
    'hiberfil.sys', 'pagefile.sys', 'swapfile.sys', 'bootTel.dat',
    'DumpStack.log', 'DumpStack.log.tmp', '$Recycle.Bin',
    'System Volume Information', 'Recovery', 'PerfLogs',
    'WindowsApps', 'Packages', 'Config.Msi',
]
