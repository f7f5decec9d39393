"""
Flat table parsing - turn supplier exports into headers + rows of strings.

Parsing is relaxed on purpose: a quote that never closes swallows the rest
of the input as literal text instead of failing the import.
"""

import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, Iterable

from openpyxl import load_workbook

from .models import ParsedTable

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
TEXT_SUFFIXES = {".csv", ".txt", ".tsv"}


def clean(value: Any) -> str:
    """Trimmed string form of a cell, "" for None."""
    if value is None:
        return ""
    return str(value).strip()


def _split_records(text: str, delimiter: str) -> list[list[str]]:
    """Split delimited text into raw records, honouring quoted fields."""
    records: list[list[str]] = []
    row: list[str] = []
    value: list[str] = []
    quoted = False
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]
        if quoted:
            if ch == '"':
                if i + 1 < length and text[i + 1] == '"':
                    value.append('"')
                    i += 1
                else:
                    quoted = False
            else:
                value.append(ch)
        elif ch == '"':
            quoted = True
        elif ch == delimiter:
            row.append("".join(value))
            value = []
        elif ch == "\n":
            row.append("".join(value))
            value = []
            records.append(row)
            row = []
        elif ch != "\r":
            value.append(ch)
        i += 1

    # Trailing record without a final newline (or an unclosed quote)
    if value or row:
        row.append("".join(value))
        records.append(row)

    return records


def _to_table(records: list[list[Any]]) -> ParsedTable:
    if not records:
        return ParsedTable()
    headers = [clean(h) for h in records[0]]
    rows = [
        [_cell_text(c) for c in record]
        for record in records[1:]
        if record and any(clean(c) != "" for c in record)
    ]
    return ParsedTable(headers=headers, rows=rows)


def _cell_text(value: Any) -> str:
    """Spreadsheet cells: integral floats lose their .0 so numeric SKUs survive."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_delimited(text: str, delimiter: str = ",") -> ParsedTable:
    """
    Parse delimited text (CSV by default).

    Args:
        text: Decoded file contents
        delimiter: Single-character field separator

    Returns:
        ParsedTable; rows whose every cell is blank are dropped
    """
    if len(delimiter) != 1:
        raise ValueError("delimiter must be a single character")
    if text.startswith("\ufeff"):
        text = text[1:]
    return _to_table(_split_records(text, delimiter))


def parse_grid(grid: Iterable[Iterable[Any]]) -> ParsedTable:
    """Parse an in-memory sheet (rows of arbitrary cell values)."""
    return _to_table([list(r) for r in grid if r is not None])


def parse_xlsx(source: str | Path | BinaryIO) -> ParsedTable:
    """Read the first worksheet of a workbook (path or binary file object)."""
    workbook = load_workbook(source, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0] if workbook.worksheets else None
        if sheet is None:
            return ParsedTable()
        grid = [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()
    return parse_grid(grid)


def read_table(path: str | Path) -> ParsedTable:
    """
    Read a supplier export from disk, dispatching on the file suffix.

    Raises:
        FileNotFoundError: path does not exist
        ValueError: unsupported file type
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Import file not found: {path}")

    table = parse_bytes(path.read_bytes(), path.name)

    logger.info(f"Read {len(table.rows)} rows x {len(table.headers)} columns from {path.name}")
    return table


def format_delimited(rows: Iterable[Iterable[Any]], delimiter: str = ",") -> str:
    """
    Reassemble rows into delimited text, quoting every field.

    parse_delimited(format_delimited(rows)) gives back the same field values.
    """
    lines = []
    for row in rows:
        cells = ['"' + ("" if c is None else str(c)).replace('"', '""') + '"' for c in row]
        lines.append(delimiter.join(cells))
    return "\n".join(lines)


def parse_bytes(data: bytes, filename: str) -> ParsedTable:
    """
    Parse uploaded file contents, dispatching on the filename's suffix.

    Raises:
        ValueError: unsupported file type
    """
    suffix = Path(filename or "").suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return parse_xlsx(io.BytesIO(data))
    if suffix in TEXT_SUFFIXES:
        text = data.decode("utf-8-sig", errors="replace")
        return parse_delimited(text, "\t" if suffix == ".tsv" else ",")
    raise ValueError(f"Unsupported file format: {suffix or filename}")
