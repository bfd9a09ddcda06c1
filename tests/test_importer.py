# tests for reading bulk-import spreadsheets (xlsx + csv)

import csv

import openpyxl
import pytest

from routine_app.errors import CatalogError
from routine_app.importer import parse_rows, read_records
from routine_app.models import ImportRecord


def _write_xlsx(path, rows, title=None):
    wb = openpyxl.Workbook()
    ws = wb.active
    if title:
        ws.title = title
    for row in rows:
        ws.append(row)
    wb.save(path)


def test_xlsx_records(tmp_path):
    path = tmp_path / "subjects.xlsx"
    _write_xlsx(path, [
        ["Subject Code", "Subject Name", "Teacher"],
        ["CS101", "Intro to CS", "Dr Smith"],
        [None, None, None],
        ["MA101", "Calculus", None],
        [101, "Numbers", " Prof Ada "],
    ])
    records, errors = read_records(path)
    assert errors == []
    assert records == [
        ImportRecord("CS101", "Intro to CS", "Dr Smith"),
        ImportRecord("MA101", "Calculus", ""),
        ImportRecord("101", "Numbers", "Prof Ada"),
    ]


def test_xlsx_named_sheet(tmp_path):
    path = tmp_path / "subjects.xlsx"
    _write_xlsx(path, [["code", "name"], ["PH101", "Physics"]], title="Catalog")
    records, _ = read_records(path, sheet="Catalog")
    assert records == [ImportRecord("PH101", "Physics")]
    with pytest.raises(CatalogError, match="no sheet"):
        read_records(path, sheet="Missing")


def test_csv_with_bad_rows(tmp_path):
    path = tmp_path / "subjects.csv"
    with path.open("w", newline="", encoding="utf-8-sig") as f:
        w = csv.writer(f)
        w.writerow(["CODE", "NAME", "TEACHER NAME"])
        w.writerow(["CS101", "Intro", "Dr Smith"])
        w.writerow(["CS/102", "Slashed", ""])
        w.writerow(["", "No code", ""])
        w.writerow(["CS103"])
    records, errors = read_records(path)
    assert records == [ImportRecord("CS101", "Intro", "Dr Smith")]
    assert len(errors) == 3
    assert errors[0].startswith("Row 3")
    assert "'/'" in errors[0]


def test_missing_header_column():
    with pytest.raises(CatalogError, match="name"):
        parse_rows([["code", "teacher"], ["CS101", "Dr Smith"]])


def test_empty_input():
    with pytest.raises(CatalogError, match="empty"):
        parse_rows([])


def test_unsupported_extension(tmp_path):
    path = tmp_path / "subjects.txt"
    path.write_text("code,name\n")
    with pytest.raises(CatalogError, match="Unsupported"):
        read_records(path)


def test_corrupt_workbook(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip file")
    with pytest.raises(CatalogError, match="Could not open"):
        read_records(path)
