"""
Export — resolve every live routine into display tuples and render them.

export_routines() is the boundary with any renderer: it returns, per routine
and per (day, time row), either an ExportCell(subject_code, subject_name,
teacher_name) or an ExportBreak(label). Renderers never see routine ids or
teacher ids again.

Three renderers ship here:
  write_docx  "Editable Weekly Schedule" document, one bordered table per routine
  write_xlsx  one worksheet per routine, days down the side, time rows across
  write_csv   the same tables stacked in one CSV, one block per routine

CSV export uses utf-8-sig (BOM) encoding so Excel opens it correctly
without needing to specify the encoding manually.
Reference: Python csv docs — https://docs.python.org/3/library/csv.html
Reference: openpyxl styles — https://openpyxl.readthedocs.io/en/stable/styles.html
Reference: python-docx tables — https://python-docx.readthedocs.io/en/latest/user/tables.html
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

from docx import Document
from docx.enum.table import WD_ALIGN_VERTICAL
from docx.enum.text import WD_ALIGN_PARAGRAPH
import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from routine_app.models import BreakRow

if TYPE_CHECKING:
    from routine_app.catalog import Catalog
    from routine_app.controller import ScheduleController

logger = logging.getLogger(__name__)

UNKNOWN_SUBJECT   = "Unknown"
TEACHER_NOT_FOUND = "Teacher not found"
NO_SUBJECT        = "No Subject"
DOCX_TITLE        = "Editable Weekly Schedule"


@dataclass(frozen=True)
class ExportCell:
    subject_code: str = ""
    subject_name: str = ""
    teacher_name: str = ""


@dataclass(frozen=True)
class ExportBreak:
    label: str


ExportEntry = Union[ExportCell, ExportBreak]


@dataclass
class RoutineTable:
    number: int                        # 1-based display number
    days:   List[str]
    times:  List[str]
    # grid[day][row]
    grid:   List[List[ExportEntry]] = field(default_factory=list)

    @property
    def title(self) -> str:
        return f"Routine {self.number}"


def cell_text(entry: ExportEntry) -> str:
    if isinstance(entry, ExportBreak):
        return entry.label
    if not entry.subject_code:
        return NO_SUBJECT
    text = f"[{entry.subject_code}] {entry.subject_name}"
    if entry.teacher_name:
        text += f"\n{entry.teacher_name}"
    return text


def export_routines(controller: "ScheduleController",
                    catalog: Optional["Catalog"] = None) -> List[RoutineTable]:
    """Resolve every live routine, in display order, into a RoutineTable."""
    catalog = catalog if catalog is not None else controller.catalog
    layout  = controller.layout
    tables: List[RoutineTable] = []

    for number, rid in enumerate(controller.routine_ids, 1):
        routine = controller.store.get_routine(rid)
        if routine is None:
            continue
        grid: List[List[ExportEntry]] = []
        for day in range(len(layout.days)):
            line: List[ExportEntry] = []
            for row in routine.rows:
                if isinstance(row, BreakRow):
                    line.append(ExportBreak(row.label))
                    continue
                cell = row.cells[day]
                if not cell.subject_code:
                    line.append(ExportCell())
                    continue
                teacher = ""
                if cell.teacher_id:
                    teacher = (catalog.teacher_name(cell.subject_code, cell.teacher_id)
                               or TEACHER_NOT_FOUND)
                line.append(ExportCell(
                    subject_code=cell.subject_code,
                    subject_name=catalog.subject_name(cell.subject_code) or UNKNOWN_SUBJECT,
                    teacher_name=teacher,
                ))
            grid.append(line)
        tables.append(RoutineTable(number=number, days=list(layout.days),
                                   times=layout.time_labels, grid=grid))
    return tables


# ── renderers ────────────────────────────────────────────────────────────────

_BREAK_FILL  = PatternFill(start_color="D3D3D3", end_color="D3D3D3", fill_type="solid")
_HEADER_FILL = PatternFill(start_color="D0D8E8", end_color="D0D8E8", fill_type="solid")
_THIN        = Side(style="thin")
_BORDER      = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_CENTER      = Alignment(wrap_text=True, horizontal="center", vertical="center")


def write_docx(tables: Sequence[RoutineTable], path: str | Path) -> None:
    """Centered title, then per routine a heading and a full-width grid table.

    Table layout matches the on-screen grid: header 'Day' + time labels, one
    row per day, break rows carry their label in every day's cell.
    """
    doc = Document()
    title = doc.add_heading(DOCX_TITLE, level=1)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    section = doc.sections[0]
    usable  = section.page_width - section.left_margin - section.right_margin

    for table in tables:
        doc.add_paragraph()
        doc.add_heading(table.title, level=2)

        n_cols = len(table.times) + 1
        grid = doc.add_table(rows=1, cols=n_cols)
        grid.style   = "Table Grid"   # single-line borders on every cell
        grid.autofit = False

        header = grid.rows[0].cells
        header[0].text = "Day"
        for cell, time in zip(header[1:], table.times):
            cell.text = time
        for day_name, line in zip(table.days, table.grid):
            cells = grid.add_row().cells
            cells[0].text = day_name
            for cell, entry in zip(cells[1:], line):
                cell.text = cell_text(entry)
                cell.vertical_alignment = WD_ALIGN_VERTICAL.CENTER

        col_width = int(usable / n_cols)
        for column in grid.columns:
            for cell in column.cells:
                cell.width = col_width

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(p))
    logger.info("Wrote %d routine(s) to %s", len(tables), p)


def write_xlsx(tables: Sequence[RoutineTable], path: str | Path) -> None:
    """One worksheet per routine: header 'Day' + time labels, one row per day."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    if not tables:
        wb.create_sheet("Weekly Schedule")

    for table in tables:
        ws = wb.create_sheet(title=table.title)
        ws.append(["Day"] + table.times)
        for col in range(1, len(table.times) + 2):
            c = ws.cell(row=1, column=col)
            c.font, c.fill, c.alignment, c.border = Font(bold=True), _HEADER_FILL, _CENTER, _BORDER

        for day_name, line in zip(table.days, table.grid):
            ws.append([day_name] + [cell_text(e) for e in line])
            row_idx = ws.max_row
            first = ws.cell(row=row_idx, column=1)
            first.font, first.alignment, first.border = Font(bold=True), _CENTER, _BORDER
            for col, entry in enumerate(line, 2):
                c = ws.cell(row=row_idx, column=col)
                c.alignment, c.border = _CENTER, _BORDER
                if isinstance(entry, ExportBreak):
                    c.fill = _BREAK_FILL

        ws.column_dimensions["A"].width = 14
        for col in range(2, len(table.times) + 2):
            ws.column_dimensions[get_column_letter(col)].width = 22

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    wb.save(p)
    logger.info("Wrote %d routine(s) to %s", len(tables), p)


def write_csv(tables: Sequence[RoutineTable], path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    # utf-8-sig adds a BOM so Excel auto-detects UTF-8 encoding
    with p.open("w", newline="", encoding="utf-8-sig") as f:
        w = csv.writer(f)
        for i, table in enumerate(tables):
            if i:
                w.writerow([])
            w.writerow([table.title])
            w.writerow(["Day"] + table.times)
            for day_name, line in zip(table.days, table.grid):
                w.writerow([day_name] + [cell_text(e).replace("\n", " - ") for e in line])
    logger.info("Wrote %d routine(s) to %s", len(tables), p)


EXPORT_SUFFIXES = (".docx", ".xlsx", ".csv")

_WRITERS = {
    ".docx": write_docx,
    ".xlsx": write_xlsx,
    ".csv":  write_csv,
}


def write_export(tables: Sequence[RoutineTable], path: str | Path) -> None:
    """Pick the renderer from the file extension (.docx, .xlsx or .csv)."""
    suffix = Path(path).suffix.lower()
    writer = _WRITERS.get(suffix)
    if writer is None:
        raise ValueError(f"Unsupported export file type '{suffix}' (use .docx, .xlsx or .csv)")
    writer(tables, path)
