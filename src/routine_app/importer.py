"""
Bulk import reader — turn a spreadsheet or CSV into ImportRecords.

The first row is a header. Recognised columns (case-insensitive):
  code     | subject code
  name     | subject name | subject
  teacher  | teacher name            (optional)

Blank rows are skipped. A row without a code or name, or whose code contains
'/', is reported as an error and left out; the remaining rows still import.

XLSX files are read with openpyxl in read-only mode.
Reference: https://openpyxl.readthedocs.io/en/stable/optimized.html
"""

from __future__ import annotations

import csv
import logging
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from routine_app.errors import CatalogError
from routine_app.models import ImportRecord

logger = logging.getLogger(__name__)

_HEADER_ALIASES = {
    "code":         "code",
    "subject code": "code",
    "name":         "name",
    "subject name": "name",
    "subject":      "name",
    "teacher":      "teacher",
    "teacher name": "teacher",
}


def _cell_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)   # 101.0 typed into a numeric column
    return str(value).strip()


def _map_header(header: Sequence[Any]) -> Dict[str, int]:
    cols: Dict[str, int] = {}
    for i, raw in enumerate(header):
        key = _HEADER_ALIASES.get(_cell_str(raw).lower())
        if key and key not in cols:
            cols[key] = i
    missing = [k for k in ("code", "name") if k not in cols]
    if missing:
        raise CatalogError(f"Import header is missing column(s): {missing}")
    return cols


def parse_rows(rows: Iterable[Sequence[Any]]) -> Tuple[List[ImportRecord], List[str]]:
    """Return (records, errors) from header + data rows."""
    it = iter(rows)
    header = next(it, None)
    if header is None:
        raise CatalogError("Import file is empty")
    cols = _map_header(header)

    records: List[ImportRecord] = []
    errors:  List[str]          = []

    def pick(row: Sequence[Any], key: str) -> str:
        i = cols.get(key)
        return _cell_str(row[i]) if i is not None and i < len(row) else ""

    # line numbers are 1-based and count the header
    for line, row in enumerate(it, 2):
        if not any(_cell_str(v) for v in row):
            continue
        code, name, teacher = pick(row, "code"), pick(row, "name"), pick(row, "teacher")
        if not code or not name:
            errors.append(f"Row {line}: subject code and name are required.")
            continue
        if "/" in code:
            errors.append(f"Row {line}: subject code cannot contain '/' ({code}).")
            continue
        records.append(ImportRecord(code=code, name=name, teacher=teacher))
    return records, errors


def _xlsx_rows(path: Path, sheet: Optional[str]) -> List[Tuple[Any, ...]]:
    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError) as e:
        raise CatalogError(f"Could not open workbook {path}: {e}") from e
    try:
        if sheet is not None:
            if sheet not in wb.sheetnames:
                raise CatalogError(f"Workbook {path} has no sheet '{sheet}'")
            ws = wb[sheet]
        else:
            ws = wb.worksheets[0]
        return [tuple(r) for r in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _csv_rows(path: Path) -> List[List[str]]:
    # utf-8-sig strips the BOM Excel adds when saving CSV
    with path.open("r", newline="", encoding="utf-8-sig") as f:
        return list(csv.reader(f))


def read_records(path: str | Path,
                 sheet: Optional[str] = None) -> Tuple[List[ImportRecord], List[str]]:
    """Read an .xlsx/.xlsm or .csv file into (records, errors)."""
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix in (".xlsx", ".xlsm"):
        rows = _xlsx_rows(p, sheet)
    elif suffix == ".csv":
        rows = _csv_rows(p)
    else:
        raise CatalogError(f"Unsupported import file type '{p.suffix}' (use .xlsx or .csv)")

    records, errors = parse_rows(rows)
    logger.info("Read %d record(s) from %s (%d rejected)", len(records), p, len(errors))
    return records, errors
