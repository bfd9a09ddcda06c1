"""
RoutineStore — the ordered list of open routines and their grids.

Pure read/write access to single cells. The store knows nothing about
teachers being double-booked; that is the controller's and the index's job.

Routine ids come from a counter and are never reused, so a stale id held by
the UI after a delete can never address a newer routine by accident.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from routine_app.errors import CellRuleError
from routine_app.models import (Cell, GridLayout, Routine, TeachingRow, TimeKey,
    default_layout)

logger = logging.getLogger(__name__)


class RoutineStore:
    def __init__(self, layout: Optional[GridLayout] = None) -> None:
        self._layout = layout or default_layout()
        self._layout.validate()
        self._routines: Dict[int, Routine] = {}
        self._order:    List[int]          = []
        self._next_id = 1

    @property
    def layout(self) -> GridLayout:
        return self._layout

    @property
    def routine_ids(self) -> Tuple[int, ...]:
        """Live routine ids in display order."""
        return tuple(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, routine_id: object) -> bool:
        return routine_id in self._routines

    def has_routine(self, routine_id: int) -> bool:
        return routine_id in self._routines

    def get_routine(self, routine_id: int) -> Optional[Routine]:
        return self._routines.get(routine_id)

    # ---- routines ------------------------------------------------------------

    def add_routine(self) -> int:
        rid = self._next_id
        self._next_id += 1
        self._routines[rid] = Routine(routine_id=rid, rows=self._layout.build_rows())
        self._order.append(rid)
        return rid

    def remove_routine(self, routine_id: int) -> None:
        if self._routines.pop(routine_id, None) is None:
            logger.debug("remove_routine: unknown routine %s", routine_id)
            return
        self._order.remove(routine_id)

    # ---- cells ---------------------------------------------------------------

    def _teaching_row(self, routine: Routine, day: int, slot: int) -> TeachingRow:
        if not 0 <= slot < len(routine.rows):
            raise CellRuleError(f"time slot {slot} is outside the grid")
        row = routine.rows[slot]
        if not isinstance(row, TeachingRow):
            raise CellRuleError(f"time slot {slot} ('{row.time}') is a break row")
        if not 0 <= day < len(row.cells):
            raise CellRuleError(f"day {day} is outside the grid")
        return row

    def get_cell(self, routine_id: int, day: int, slot: int) -> Optional[Cell]:
        routine = self._routines.get(routine_id)
        if routine is None:
            return None
        return self._teaching_row(routine, day, slot).cells[day]

    def set_cell(self, routine_id: int, day: int, slot: int,
                 subject_code: str, teacher_id: str) -> None:
        routine = self._routines.get(routine_id)
        if routine is None:
            logger.debug("set_cell: unknown routine %s", routine_id)
            return
        row = self._teaching_row(routine, day, slot)
        if teacher_id and not subject_code:
            raise CellRuleError("a teacher cannot be set on a cell without a subject")
        row.cells[day] = Cell(subject_code=subject_code, teacher_id=teacher_id)

    def teaching_cells(self, routine_id: int) -> Iterator[Tuple[TimeKey, Cell]]:
        """Yield (TimeKey, Cell) for every teaching cell of a routine."""
        routine = self._routines.get(routine_id)
        if routine is None:
            return
        for slot, row in enumerate(routine.rows):
            if isinstance(row, TeachingRow):
                for day, cell in enumerate(row.cells):
                    yield TimeKey(day, slot), cell
