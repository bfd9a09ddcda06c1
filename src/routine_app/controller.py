"""
ScheduleController — the only way routines and cells are mutated.

Owns one RoutineStore and one TeacherAssignmentIndex and keeps them in step:
every cell write is followed by the matching index update, and deleting a
routine purges every index entry that pointed at it.

Conflict policy:
  WARN  (default) a teacher already booked in another routine at the same
        TimeKey is still assigned; select_teacher() returns the display
        number of the other routine so the UI can flag it. Last write wins.
  BLOCK select_teacher() raises TeacherConflictError and changes nothing.

Teacher lists are fetched in the background when a subject is picked. The
cell becomes SUBJECT_ONLY straight away; the fetch only fills the catalog
cache. Every fetch carries a per-cell ticket, and a result whose ticket was
superseded (subject changed again, cell cleared, routine deleted) is dropped.

Executor reference:
https://docs.python.org/3/library/concurrent.futures.html
"""

from __future__ import annotations

import enum
import itertools
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Dict, List, Optional, Sequence, Tuple

from routine_app.catalog import Catalog, CatalogSource, TeacherListStatus
from routine_app.errors import CellRuleError, IndexDriftError, TeacherConflictError
from routine_app.models import Cell, GridLayout, TimeKey
from routine_app.routine_store import RoutineStore
from routine_app.teacher_index import TeacherAssignmentIndex

logger = logging.getLogger(__name__)

CellAddress = Tuple[int, int, int]   # (routine_id, day, slot)


class ConflictPolicy(enum.Enum):
    WARN  = "warn"
    BLOCK = "block"


@dataclass(frozen=True)
class Conflict:
    time_key:     TimeKey
    teacher_id:   str
    other_number: Optional[int]   # display number of the other routine


def display_number(routine_ids: Sequence[int], routine_id: int) -> Optional[int]:
    """1-based position of routine_id among the live routines, None if gone."""
    try:
        return list(routine_ids).index(routine_id) + 1
    except ValueError:
        return None


class ScheduleController:
    def __init__(
        self,
        layout:   Optional[GridLayout]    = None,
        catalog:  Optional[Catalog]       = None,
        source:   Optional[CatalogSource] = None,
        policy:   ConflictPolicy          = ConflictPolicy.WARN,
        executor: Optional[Executor]      = None,
    ) -> None:
        self._store   = RoutineStore(layout)
        self._index   = TeacherAssignmentIndex()
        self._catalog = catalog if catalog is not None else Catalog()
        self._source  = source
        self.policy   = policy

        self._owns_executor = executor is None and source is not None
        if self._owns_executor:
            executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="teacher-load")
        self._executor = executor

        self._tickets:     Dict[CellAddress, Tuple[str, int]] = {}
        self._ticket_lock = threading.Lock()
        self._seq         = itertools.count(1)

    # ---- read access ---------------------------------------------------------

    @property
    def store(self) -> RoutineStore:
        return self._store

    @property
    def index(self) -> TeacherAssignmentIndex:
        return self._index

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def layout(self) -> GridLayout:
        return self._store.layout

    @property
    def routine_ids(self) -> Tuple[int, ...]:
        return self._store.routine_ids

    def get_cell(self, routine_id: int, day: int, slot: int) -> Optional[Cell]:
        return self._store.get_cell(routine_id, day, slot)

    # ---- routines ------------------------------------------------------------

    def add_routine(self) -> int:
        rid = self._store.add_routine()
        logger.info("Added routine %s (Routine %d)", rid, len(self._store))
        return rid

    def delete_routine(self, routine_id: int) -> None:
        if not self._store.has_routine(routine_id):
            logger.debug("delete_routine: unknown routine %s", routine_id)
            return
        self._store.remove_routine(routine_id)
        purged = self._index.purge_routine(routine_id)
        with self._ticket_lock:
            for addr in [a for a in self._tickets if a[0] == routine_id]:
                del self._tickets[addr]
        logger.info("Deleted routine %s (%d teacher assignment(s) released)",
                    routine_id, purged)

    # ---- cells ---------------------------------------------------------------

    def select_subject(self, routine_id: int, day: int, slot: int,
                       subject_code: str) -> Optional[Future]:
        """Pick a subject for a cell; any teacher on the cell is dropped.

        Returns the Future of the background teacher-list load, or None when
        nothing was started.
        """
        if not self._store.has_routine(routine_id):
            logger.debug("select_subject: unknown routine %s", routine_id)
            return None
        if not subject_code:
            self.clear_cell(routine_id, day, slot)
            return None

        old = self._store.get_cell(routine_id, day, slot)
        self._store.set_cell(routine_id, day, slot, subject_code, "")
        if old is not None and old.teacher_id:
            self._index.unassign(old.teacher_id, TimeKey(day, slot), routine_id)
        return self._start_teacher_load((routine_id, day, slot), subject_code)

    def select_teacher(self, routine_id: int, day: int, slot: int,
                       teacher_id: str) -> Optional[int]:
        """Assign a teacher to a cell that already has a subject.

        Returns the display number of a routine that already uses the teacher
        at the same time (advisory), or None.
        """
        if not self._store.has_routine(routine_id):
            logger.debug("select_teacher: unknown routine %s", routine_id)
            return None
        cell = self._store.get_cell(routine_id, day, slot)
        if cell is None or not cell.subject_code:
            raise CellRuleError("select a subject before choosing a teacher")

        key = TimeKey(day, slot)
        if not teacher_id:
            self._store.set_cell(routine_id, day, slot, cell.subject_code, "")
            if cell.teacher_id:
                self._index.unassign(cell.teacher_id, key, routine_id)
            return None

        other = self._index.conflicting_routine(teacher_id, key, routine_id)
        other_number = self.conflict_display_number(other) if other is not None else None
        if other is not None and self.policy is ConflictPolicy.BLOCK:
            raise TeacherConflictError(teacher_id, other_number)

        self._store.set_cell(routine_id, day, slot, cell.subject_code, teacher_id)
        if cell.teacher_id:
            self._index.unassign(cell.teacher_id, key, routine_id)
        self._index.assign(teacher_id, key, routine_id)

        if other is not None:
            logger.warning("Teacher %s double-booked at %s: routine %s and Routine %s",
                           teacher_id, key, routine_id, other_number)
        return other_number

    def clear_cell(self, routine_id: int, day: int, slot: int) -> None:
        if not self._store.has_routine(routine_id):
            logger.debug("clear_cell: unknown routine %s", routine_id)
            return
        old = self._store.get_cell(routine_id, day, slot)
        self._store.set_cell(routine_id, day, slot, "", "")
        if old is not None and old.teacher_id:
            self._index.unassign(old.teacher_id, TimeKey(day, slot), routine_id)
        with self._ticket_lock:
            self._tickets.pop((routine_id, day, slot), None)

    # ---- conflict queries ----------------------------------------------------

    def is_available(self, teacher_id: str, time_key: TimeKey, routine_id: int) -> bool:
        return self._index.is_available(teacher_id, time_key, routine_id)

    def conflicting_routine(self, teacher_id: str, time_key: TimeKey,
                            routine_id: int) -> Optional[int]:
        """Display number of another routine using the teacher, or None."""
        other = self._index.conflicting_routine(teacher_id, time_key, routine_id)
        if other is None:
            return None
        return self.conflict_display_number(other)

    def conflict_display_number(self, routine_id: int) -> Optional[int]:
        return display_number(self._store.routine_ids, routine_id)

    def conflicts(self, routine_id: int) -> List[Conflict]:
        """Every double-booking that involves this routine, sorted by TimeKey."""
        found = []
        for teacher_id, key in self._index.entries_for(routine_id):
            other = self._index.conflicting_routine(teacher_id, key, routine_id)
            if other is not None:
                found.append(Conflict(key, teacher_id, self.conflict_display_number(other)))
        return sorted(found, key=lambda c: (c.time_key, c.teacher_id))

    def check_consistency(self) -> None:
        """Raise IndexDriftError if the index differs from a fresh rebuild."""
        rebuilt = TeacherAssignmentIndex.rebuild(self._store)
        if rebuilt != self._index:
            raise IndexDriftError(
                f"teacher index drifted: live={self._index.as_dict()!r} "
                f"rebuilt={rebuilt.as_dict()!r}"
            )

    # ---- teacher candidates --------------------------------------------------

    def teacher_status(self, subject_code: str) -> TeacherListStatus:
        return self._catalog.teacher_status(subject_code)

    def teacher_candidates(self, routine_id: int, day: int,
                           slot: int) -> Optional[Dict[str, str]]:
        """{teacher_id: name} for the cell's subject; None = not loaded."""
        cell = self._store.get_cell(routine_id, day, slot)
        if cell is None or not cell.subject_code:
            return None
        return self._catalog.teachers_for(cell.subject_code)

    def teachers_loading(self, routine_id: int, day: int, slot: int) -> bool:
        """True while the cell's subject has a teacher-list load in flight.

        Follows the catalog status, not Future.done(): a future reports done
        before its done-callback has stored the list.
        """
        cell = self._store.get_cell(routine_id, day, slot)
        if cell is None or not cell.subject_code:
            return False
        return self._catalog.teacher_status(cell.subject_code) is TeacherListStatus.LOADING

    def _start_teacher_load(self, addr: CellAddress,
                            subject_code: str) -> Optional[Future]:
        if self._source is None or self._executor is None:
            return None
        ticket = (subject_code, next(self._seq))
        # ticket and LOADING status change together; see _on_teachers_loaded
        with self._ticket_lock:
            self._tickets[addr] = ticket
            self._catalog.mark_loading(subject_code)

        future = self._executor.submit(self._source.load_teachers, subject_code)
        future.add_done_callback(partial(self._on_teachers_loaded, addr, ticket))
        return future

    def _on_teachers_loaded(self, addr: CellAddress, ticket: Tuple[str, int],
                            future: Future) -> None:
        subject_code = ticket[0]
        exc = future.exception()
        # catalog status only changes while the tickets are locked
        with self._ticket_lock:
            if self._tickets.get(addr) != ticket:
                if not any(t[0] == subject_code for t in self._tickets.values()):
                    self._catalog.clear_loading(subject_code)
                logger.debug("Dropping stale teacher list for %s (cell %s)", subject_code, addr)
                return
            del self._tickets[addr]
            if exc is not None:
                self._catalog.mark_failed(subject_code, str(exc))
            else:
                self._catalog.store_teachers(subject_code, future.result())

        if exc is not None:
            logger.warning("Teachers unavailable for %s: %s", subject_code, exc)
        else:
            logger.debug("Loaded teacher list for %s", subject_code)

    def shutdown(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
