"""Raw source readers for the wilaya data builder.

Provides the two capabilities the loaders are built on:

1. ``read_table``: a tabular source (CSV, or an XLSX workbook exported from a
   spreadsheet) as ordered rows of trimmed strings.
2. ``read_json``: a JSON document decoded into Python objects.

CSV files arrive from several tools (Excel exports, scraped listings), so the
byte encoding is detected with charset-normalizer when the content is not
valid UTF-8, and any BOM is stripped before parsing.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import zipfile
from pathlib import Path
from typing import Any

import openpyxl
from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)

_ENCODING_CONFIDENCE_THRESHOLD: float = 0.7

# Non-UTF-8 exports come from French-locale Windows tools
_FALLBACK_ENCODINGS: list[str] = ["cp1252", "latin_1"]

# BOM byte sequences to strip from file start
_UTF8_BOM: bytes = b"\xef\xbb\xbf"
_UTF16_LE_BOM: bytes = b"\xff\xfe"
_UTF16_BE_BOM: bytes = b"\xfe\xff"

_XLSX_SUFFIXES: frozenset[str] = frozenset({".xlsx", ".xlsm"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BuildError(Exception):
    """Base class for errors that abort a build run."""


class SourceUnavailableError(BuildError):
    """Raised when a source file is missing, unreadable, or undecodable.

    Attributes:
        path: Location of the offending source file.
        reason: Human-readable description of the failure.
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Source '{path}' unavailable: {reason}")


# ---------------------------------------------------------------------------
# Byte decoding
# ---------------------------------------------------------------------------


def _read_bytes(path: Path) -> bytes:
    """Read raw file content, mapping OS errors to SourceUnavailableError."""
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise SourceUnavailableError(path, "file not found") from exc
    except OSError as exc:
        raise SourceUnavailableError(path, str(exc)) from exc


def decode_text(raw: bytes, path: Path) -> str:
    """Decode raw source bytes to text, stripping any leading BOM.

    UTF-8 is tried first. Content that is not valid UTF-8 goes through
    charset-normalizer detection, limited to the Western codepages the
    exports use; a confident candidate is used to decode.

    Args:
        raw: File content.
        path: Source location, used in error messages.

    Returns:
        Decoded text without BOM.

    Raises:
        SourceUnavailableError: If no encoding decodes the content.
    """
    if raw.startswith(_UTF8_BOM):
        raw = raw[len(_UTF8_BOM) :]
    elif raw.startswith((_UTF16_LE_BOM, _UTF16_BE_BOM)):
        # The utf-16 codec consumes the BOM and picks endianness from it
        try:
            return raw.decode("utf-16")
        except UnicodeDecodeError as exc:
            raise SourceUnavailableError(
                path, f"invalid UTF-16 content: {exc}"
            ) from exc

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass

    best = from_bytes(raw, cp_isolation=_FALLBACK_ENCODINGS).best()
    if best is None:
        raise SourceUnavailableError(path, "cannot detect encoding")

    # charset-normalizer uses chaos (0=perfect). Invert to confidence.
    confidence = 1.0 - best.chaos
    if confidence < _ENCODING_CONFIDENCE_THRESHOLD:
        raise SourceUnavailableError(
            path,
            f"low confidence ({confidence:.2f}) detecting encoding "
            f"(best candidate {best.encoding})",
        )

    logger.info(
        "Decoded %s as %s (%.2f)",
        path.name,
        best.encoding,
        confidence,
    )
    return str(best)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def _is_blank(row: list[str]) -> bool:
    """A row is blank when it has no fields or a single empty field."""
    return not row or (len(row) == 1 and not row[0])


def _parse_csv_text(text: str) -> list[list[str]]:
    """Split CSV text into trimmed rows, dropping blank lines."""
    reader = csv.reader(io.StringIO(text, newline=""))
    rows: list[list[str]] = []
    for record in reader:
        row = [field.strip() for field in record]
        if _is_blank(row):
            continue
        rows.append(row)
    return rows


def _cell_text(value: object) -> str:
    """Render a worksheet cell value the way it would appear in a CSV export."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _read_xlsx_rows(path: Path) -> list[list[str]]:
    """Read the active worksheet of an XLSX workbook with streaming reads."""
    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except FileNotFoundError as exc:
        raise SourceUnavailableError(path, "file not found") from exc
    except (zipfile.BadZipFile, OSError) as exc:
        raise SourceUnavailableError(path, f"not a valid XLSX file: {exc}") from exc

    try:
        ws = wb.active
        if ws is None:
            raise SourceUnavailableError(path, "workbook has no active worksheet")
        rows: list[list[str]] = []
        for values in ws.iter_rows(values_only=True):
            row = [_cell_text(v) for v in values]
            if all(not cell for cell in row):
                continue
            rows.append(row)
    finally:
        wb.close()
    return rows


def read_table(path: Path) -> list[list[str]]:
    """Read a tabular source as ordered rows of trimmed strings.

    The header row, if any, is returned as the first row; callers decide
    whether to skip it. Blank lines are dropped. Rows keep their own width,
    so short rows stay short.

    Args:
        path: CSV file, or XLSX workbook when the suffix says so.

    Returns:
        List of rows in source order.

    Raises:
        SourceUnavailableError: If the file is missing or cannot be decoded.
    """
    if path.suffix.lower() in _XLSX_SUFFIXES:
        rows = _read_xlsx_rows(path)
    else:
        text = decode_text(_read_bytes(path), path)
        rows = _parse_csv_text(text)
    logger.debug("Read %d rows from %s", len(rows), path)
    return rows


# ---------------------------------------------------------------------------
# JSON documents
# ---------------------------------------------------------------------------


def read_json(path: Path) -> Any:
    """Decode a JSON document from disk.

    Args:
        path: JSON file location.

    Returns:
        Decoded document, with object key order preserved.

    Raises:
        SourceUnavailableError: If the file is missing or not valid JSON.
    """
    text = decode_text(_read_bytes(path), path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SourceUnavailableError(path, f"invalid JSON: {exc}") from exc
