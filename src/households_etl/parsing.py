from __future__ import annotations

import csv
import logging
from io import StringIO
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from .config_loader import IngestionConfig
from .models import RawRow

logger = logging.getLogger(__name__)

HEADER_HINTS = ("first", "name")
QUOTE_CHARS = "\"'"
# Column names used when the first line is data rather than a header.
POSITIONAL_HEADERS = ("first name", "last name", "email", "mobile")


class UnsupportedUploadError(ValueError):
    """Raised when an upload is rejected before parsing."""


def detect_delimiter(line: str) -> str:
    if "\t" in line:
        return "\t"
    if ";" in line:
        return ";"
    return ","


def _strip_quote_layer(value: str, quote_chars: str = QUOTE_CHARS) -> str:
    value = value.strip()
    if value and value[0] in quote_chars:
        value = value[1:]
    if value and value[-1] in quote_chars:
        value = value[:-1]
    return value.strip()


def _read_frame(text: str, delimiter: str, width: int, quoting: int) -> pd.DataFrame:
    frame = pd.read_csv(
        StringIO(text),
        sep=delimiter,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        skipinitialspace=True,
        quotechar='"',
        doublequote=True,
        quoting=quoting,
        engine="c",
    )
    return frame.fillna("")


def _read_quoted(text: str, delimiter: str, width: int, line_count: int) -> Optional[pd.DataFrame]:
    try:
        frame = _read_frame(text, delimiter, width, csv.QUOTE_MINIMAL)
    except ValueError as exc:
        logger.debug("Quoted read failed, taking quotes literally: %s", exc)
        return None
    if len(frame) != line_count:
        logger.debug("A quoted field spans lines, taking quotes literally")
        return None
    return frame


def read_records(lines: Sequence[str], delimiter: str) -> List[List[str]]:
    """Split stripped, non-blank ``lines`` into trimmed cells, one record per line.

    A delimiter inside a double-quoted span is not a split point and ``""``
    inside the span is a literal quote; the CSV reader removes that quote
    layer, and one layer of single quotes is stripped here. When a quoted span
    does not close on its own line, every line is re-read with quotes taken
    literally and one layer of either quote is stripped from each cell.
    Trailing columns that are empty in every record are dropped.
    """
    if not lines:
        return []
    width = max(line.count(delimiter) for line in lines) + 1
    text = "\n".join(lines)

    frame = _read_quoted(text, delimiter, width, len(lines))
    strip_chars = "'"
    if frame is None:
        frame = _read_frame(text, delimiter, width, csv.QUOTE_NONE)
        strip_chars = QUOTE_CHARS

    records = [
        [_strip_quote_layer(str(cell), strip_chars) for cell in values]
        for values in frame.itertuples(index=False, name=None)
    ]
    used = 1
    for record in records:
        filled = [position for position, cell in enumerate(record, start=1) if cell]
        if filled:
            used = max(used, filled[-1])
    return [record[:used] for record in records]


def looks_like_header(cells: Sequence[str]) -> bool:
    if not cells:
        return False
    first_cell = cells[0].lower()
    return any(hint in first_cell for hint in HEADER_HINTS)


def _unique_headers(cells: Sequence[str]) -> List[str]:
    headers: List[str] = []
    seen: set[str] = set()
    for position, cell in enumerate(cells, start=1):
        name = cell or f"column_{position}"
        candidate = name
        suffix = 2
        while candidate in seen:
            candidate = f"{name}_{suffix}"
            suffix += 1
        seen.add(candidate)
        headers.append(candidate)
    return headers


def _positional_headers(width: int) -> List[str]:
    headers = list(POSITIONAL_HEADERS[:width])
    headers.extend(f"column_{position}" for position in range(len(headers) + 1, width + 1))
    return headers


def parse_lines(lines: Iterable[str]) -> List[RawRow]:
    non_blank = [line.strip() for line in lines if line.strip()]
    if not non_blank:
        return []

    delimiter = detect_delimiter(non_blank[0])
    records = read_records(non_blank, delimiter)
    has_header = looks_like_header(records[0])
    if has_header:
        headers = _unique_headers(records[0])
        data = records[1:]
    else:
        headers = _positional_headers(len(records[0]))
        data = records

    rows: List[RawRow] = [dict(zip(headers, cells)) for cells in data]
    logger.debug(
        "Parsed %d row(s) with delimiter %r (header=%s)", len(rows), delimiter, has_header
    )
    return rows


def parse_text(text: Optional[str]) -> List[RawRow]:
    """Parse pasted tabular text. Empty or unusable input yields ``[]``."""
    if not text or not isinstance(text, str):
        return []
    return parse_lines(text.splitlines())


def parse_bytes(data: Optional[bytes], encoding: str = "utf-8") -> List[RawRow]:
    if not data:
        return []
    codec = "utf-8-sig" if encoding.lower().replace("_", "-") in {"utf-8", "utf8"} else encoding
    try:
        text = data.decode(codec, errors="replace")
    except LookupError:
        logger.warning("Unknown encoding %s; falling back to utf-8", encoding)
        text = data.decode("utf-8-sig", errors="replace")
    return parse_text(text)


def _base_content_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def ensure_tabular_upload(
    content_type: Optional[str],
    filename: Optional[str],
    size: int,
    settings: IngestionConfig,
) -> None:
    base_type = _base_content_type(content_type)
    name = (filename or "").lower()
    type_ok = base_type in settings.allowed_content_types
    extension_ok = any(name.endswith(ext) for ext in settings.allowed_extensions)
    if not (type_ok or extension_ok):
        raise UnsupportedUploadError(
            f"Only tabular uploads are accepted (content type {content_type!r}, file {filename!r})"
        )
    if size > settings.max_upload_bytes:
        raise UnsupportedUploadError(
            f"Upload of {size} bytes exceeds the {settings.max_upload_bytes} byte limit"
        )


def read_upload_rows(
    data: bytes,
    content_type: Optional[str],
    filename: Optional[str],
    settings: IngestionConfig,
) -> List[RawRow]:
    ensure_tabular_upload(content_type, filename, len(data or b""), settings)
    rows = parse_bytes(data, settings.encoding)
    logger.info("Parsed %d row(s) from upload %s", len(rows), filename or "<unnamed>")
    return rows
