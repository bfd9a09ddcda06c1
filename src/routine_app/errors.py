"""Exception types shared by the routine engine and its collaborators."""

from __future__ import annotations

from typing import Optional


class RoutineError(ValueError):
    """Base class for rejected routine operations."""


class CellRuleError(RoutineError):
    """Raised when a write would break a cell rule; the cell is unchanged.

    Covers a teacher without a subject, writes into a break row and
    coordinates outside the grid.
    """


class TeacherConflictError(RoutineError):
    """Raised by a blocking controller when the teacher is already booked."""

    def __init__(self, teacher_id: str, display_number: Optional[int]) -> None:
        self.teacher_id     = teacher_id
        self.display_number = display_number
        where = f"Routine {display_number}" if display_number else "another routine"
        super().__init__(f"Teacher '{teacher_id}' is already assigned in {where}")


class IndexDriftError(RoutineError):
    """The teacher index no longer matches the routine cells."""


class CatalogError(ValueError):
    """Raised for invalid catalog input or an unreadable catalog/import file."""


class LayoutError(ValueError):
    """Raised when a grid layout file is structurally invalid."""
