import json
import logging
import os
import re
from pathlib import Path
from datetime import datetime
from typing import Optional, List

from .. import config
from ..exceptions import ContentExtractionError
from ..models import ExtractionResult

HTML_TITLE_RE = re.compile(r'<title>(.*?)</title>', re.IGNORECASE)
COMMENT_TITLE_RE = re.compile(r'//\s*title:|/\*\s*title:|#\s*title:', re.IGNORECASE)
TITLE_VALUE_RE = re.compile(r'title:\s*(.+)', re.IGNORECASE)


class ContentExtractor:
    """
    Turns a file on disk into searchable text and a display title.

    Strategies:
      - Text files (config.TEXT_EXTS): read fully, truncate, derive a title.
      - Documents (config.TITLE_ONLY_EXTS): summary line + filename title, no parsing.
      - Everything else: filename only.

    Never raises; every failure becomes a non-extractable result.
    """

    def extract(self, path: str, size: int, modified_time: Optional[datetime] = None) -> ExtractionResult:
        file_name = os.path.basename(path)
        try:
            ext = Path(file_name).suffix.lower()

            # Too big to read at all
            if size > config.MAX_FILE_SIZE:
                return ExtractionResult(title=file_name, reason=config.REASON_TOO_LARGE)

            kind = config.EXT_TO_KIND.get(ext)
            if kind == 'text':
                return self.extract_text(path, file_name)
            if kind == 'document':
                return self.extract_document_title(path, file_name, size, modified_time)

            return ExtractionResult(title=file_name, reason=config.REASON_UNSUPPORTED)

        except ContentExtractionError as e:
            logging.debug(f"No content for {path}: {e}")
            return ExtractionResult(title=file_name, reason=str(e))
        except Exception as e:
            logging.warning(f"Content extraction failed for {path}: {e}")
            return ExtractionResult(title=file_name, reason=str(e))

    def extract_text(self, path: str, file_name: str) -> ExtractionResult:
        try:
            with open(path, 'r', encoding='utf-8', newline='') as f:
                content = f.read()
        except IsADirectoryError:
            return ExtractionResult(title=file_name, reason=config.REASON_DIRECTORY)
        except (OSError, UnicodeDecodeError) as e:
            # Windows reports directories as PermissionError
            if os.path.isdir(path):
                return ExtractionResult(title=file_name, reason=config.REASON_DIRECTORY)
            logging.debug(f"Unreadable text file {path}: {e}")
            return ExtractionResult(title=file_name, reason=config.REASON_BINARY)

        if len(content) > config.MAX_CONTENT_LENGTH:
            stored = content[:config.MAX_CONTENT_LENGTH] + config.TRUNCATION_MARKER
        else:
            stored = content

        return ExtractionResult(
            title=self.title_from_content(content, file_name),
            content=stored,
            extractable=True,
            content_length=len(content),
            word_count=len(content.split()),
        )

    def title_from_content(self, content: str, file_name: str) -> str:
        """
        Picks a display title, first match wins:
        <title> tag, '# ' heading, 'title:' comment, JSON field, short first line, filename.
        """
        lines = content.split('\n')[:config.TITLE_SCAN_LINES]

        match = HTML_TITLE_RE.search(content)
        if match:
            return match.group(1).strip()

        for line in lines:
            if line.strip().startswith('# '):
                return line.strip()[1:].strip()

        for line in lines:
            if COMMENT_TITLE_RE.search(line):
                value = TITLE_VALUE_RE.search(line)
                if value:
                    return value.group(1).strip()
                break

        if Path(file_name).suffix.lower() == '.json':
            title = self._json_title(content)
            if title:
                return title

        first_line = self._first_non_blank(lines)
        if first_line and len(first_line) < config.MAX_FIRST_LINE_TITLE:
            return first_line

        return file_name

    def extract_document_title(self,
                               path: str,
                               file_name: str,
                               size: int,
                               modified_time: Optional[datetime]) -> ExtractionResult:
        """Documents are summarised from filesystem metadata only."""
        if modified_time is None:
            try:
                stat_result = os.stat(path)
                modified_time = datetime.fromtimestamp(stat_result.st_mtime)
                size = stat_result.st_size
            except OSError as e:
                raise ContentExtractionError(f"Cannot stat {file_name}: {e.strerror or e}") from e

        stem, ext = os.path.splitext(file_name)
        summary = f"Document: {file_name}\nSize: {size} bytes\nModified: {modified_time.isoformat()}"
        return ExtractionResult(
            title=stem,
            content=summary,
            reason=config.REASON_DOCUMENT,
            document_type=ext[1:].upper(),
        )

    # --- Internal Helpers ---

    def _json_title(self, content: str) -> Optional[str]:
        try:
            data = json.loads(content)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        for key in config.JSON_TITLE_FIELDS:
            value = data.get(key)
            if value:
                return str(value)
        return None

    def _first_non_blank(self, lines: List[str]) -> Optional[str]:
        for line in lines:
            if line.strip():
                return line.strip()
        return None
