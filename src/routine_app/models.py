"""
Data model layer for the weekly routine builder.

Every domain object is a plain Python dataclass. The @dataclass decorator
generates __init__, __repr__ and __eq__ automatically from field declarations.

Reference: Python Software Foundation. "dataclasses — Data Classes."
https://docs.python.org/3/library/dataclasses.html

Design note — tagged rows:
  A routine row is either a TeachingRow (one Cell per day) or a BreakRow
  (a label only). Code that walks a grid checks isinstance(row, TeachingRow)
  instead of probing an "is_break" flag before touching the cells.

Design note — flat entities with ID references:
  A Cell stores a subject code and a teacher id, never Subject or Teacher
  objects. Names are resolved through the catalog when displayed.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Union

DEFAULT_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")


@dataclass(frozen=True, order=True)
class TimeKey:
    """(day, slot) coordinate shared by every routine."""
    day:  int
    slot: int

    def __str__(self) -> str:
        return f"{self.day}-{self.slot}"


class CellState(enum.Enum):
    EMPTY               = "empty"
    SUBJECT_ONLY        = "subject_only"
    SUBJECT_AND_TEACHER = "subject_and_teacher"


@dataclass(frozen=True)
class Cell:
    # "" = unset. teacher_id is a sub-selection of subject_code.
    subject_code: str = ""
    teacher_id:   str = ""

    @property
    def state(self) -> CellState:
        if not self.subject_code:
            return CellState.EMPTY
        if not self.teacher_id:
            return CellState.SUBJECT_ONLY
        return CellState.SUBJECT_AND_TEACHER


EMPTY_CELL = Cell()


@dataclass
class TeachingRow:
    time:  str
    cells: List[Cell] = field(default_factory=list)


@dataclass(frozen=True)
class BreakRow:
    time:  str
    label: str


Row = Union[TeachingRow, BreakRow]


@dataclass
class Routine:
    routine_id: int
    rows:       List[Row] = field(default_factory=list)


# ── grid layout (configuration) ──────────────────────────────────────────────

@dataclass(frozen=True)
class RowSpec:
    """One time row of the layout, e.g. '9:00 - 10:00' or a lunch break."""
    time:     str
    is_break: bool = False
    label:    str  = ""


@dataclass
class GridLayout:
    days: List[str]     = field(default_factory=lambda: list(DEFAULT_DAYS))
    rows: List[RowSpec] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        if not self.days:
            raise ValueError("layout needs at least one day")
        if len(set(self.days)) != len(self.days):
            raise ValueError(f"duplicate day names in layout: {self.days}")
        if not self.rows:
            raise ValueError("layout needs at least one row")
        for i, spec in enumerate(self.rows):
            if spec.is_break and not spec.label:
                raise ValueError(f"break row {i} ('{spec.time}') has no label")
        if all(spec.is_break for spec in self.rows):
            raise ValueError("layout needs at least one teaching row")

    def build_rows(self) -> List[Row]:
        """Fresh grid rows: empty cells in teaching rows, break rows as-is."""
        rows: List[Row] = []
        for spec in self.rows:
            if spec.is_break:
                rows.append(BreakRow(time=spec.time, label=spec.label))
            else:
                rows.append(TeachingRow(time=spec.time,
                                        cells=[EMPTY_CELL] * len(self.days)))
        return rows

    @property
    def time_labels(self) -> List[str]:
        return [spec.time for spec in self.rows]


def default_layout() -> GridLayout:
    """Five weekdays, seven teaching hours and a lunch break at noon."""
    return GridLayout(
        days=list(DEFAULT_DAYS),
        rows=[
            RowSpec("9:00 - 10:00"),
            RowSpec("10:00 - 11:00"),
            RowSpec("11:00 - 12:00"),
            RowSpec("12:00 - 1:00", is_break=True, label="Lunch Break"),
            RowSpec("1:00 - 2:00"),
            RowSpec("2:00 - 3:00"),
            RowSpec("3:00 - 4:00"),
            RowSpec("4:00 - 5:00"),
        ],
    )


# ── catalog reference data ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Subject:
    code: str
    name: str


@dataclass(frozen=True)
class Teacher:
    id:   str
    name: str


@dataclass(frozen=True)
class ImportRecord:
    """One bulk-import row, already parsed: subject plus optional teacher."""
    code:    str
    name:    str
    teacher: str = ""
