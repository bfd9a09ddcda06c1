"""
TeacherAssignmentIndex — which routines use a teacher at each TimeKey.

    teacher_id -> TimeKey -> {routine_id, ...}

The index is a cache over the routine cells, never a source of truth:
rebuild() derives it from scratch and must always equal the incrementally
maintained copy. Empty sets and empty teacher entries are removed as soon as
they appear, so an entry present in the index always means "in use".

A reverse map routine_id -> {(teacher_id, TimeKey)} is kept alongside so a
routine can be purged without scanning every teacher.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, FrozenSet, Optional, Set, Tuple

from routine_app.models import TimeKey

if TYPE_CHECKING:
    from routine_app.routine_store import RoutineStore


class TeacherAssignmentIndex:
    def __init__(self) -> None:
        self._by_teacher: Dict[str, Dict[TimeKey, Set[int]]]   = {}
        self._by_routine: Dict[int, Set[Tuple[str, TimeKey]]]  = {}

    @classmethod
    def rebuild(cls, store: "RoutineStore") -> "TeacherAssignmentIndex":
        """Derive a fresh index by scanning every teaching cell."""
        index = cls()
        for rid in store.routine_ids:
            for key, cell in store.teaching_cells(rid):
                if cell.teacher_id:
                    index.assign(cell.teacher_id, key, rid)
        return index

    # ---- mutation ------------------------------------------------------------

    def assign(self, teacher_id: str, time_key: TimeKey, routine_id: int) -> None:
        self._by_teacher.setdefault(teacher_id, {}).setdefault(time_key, set()).add(routine_id)
        self._by_routine.setdefault(routine_id, set()).add((teacher_id, time_key))

    def unassign(self, teacher_id: str, time_key: TimeKey, routine_id: int) -> None:
        slots = self._by_teacher.get(teacher_id)
        if not slots or time_key not in slots:
            return
        routines = slots[time_key]
        routines.discard(routine_id)
        if not routines:
            del slots[time_key]
        if not slots:
            del self._by_teacher[teacher_id]

        back = self._by_routine.get(routine_id)
        if back is not None:
            back.discard((teacher_id, time_key))
            if not back:
                del self._by_routine[routine_id]

    def purge_routine(self, routine_id: int) -> int:
        """Unassign every entry that references a routine; returns the count."""
        entries = self._by_routine.pop(routine_id, set())
        for teacher_id, time_key in entries:
            self.unassign(teacher_id, time_key, routine_id)
        return len(entries)

    # ---- queries -------------------------------------------------------------

    def routines_at(self, teacher_id: str, time_key: TimeKey) -> FrozenSet[int]:
        return frozenset(self._by_teacher.get(teacher_id, {}).get(time_key, ()))

    def is_available(self, teacher_id: str, time_key: TimeKey, routine_id: int) -> bool:
        return self.conflicting_routine(teacher_id, time_key, routine_id) is None

    def conflicting_routine(self, teacher_id: str, time_key: TimeKey,
                            routine_id: int) -> Optional[int]:
        """Any routine other than routine_id using the teacher at time_key.

        Under normal use there is at most one; the lowest id wins otherwise.
        """
        others = [rid for rid in self.routines_at(teacher_id, time_key) if rid != routine_id]
        return min(others) if others else None

    def entries_for(self, routine_id: int) -> FrozenSet[Tuple[str, TimeKey]]:
        return frozenset(self._by_routine.get(routine_id, ()))

    def as_dict(self) -> Dict[str, Dict[TimeKey, Set[int]]]:
        return {
            tid: {key: set(rids) for key, rids in slots.items()}
            for tid, slots in self._by_teacher.items()
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TeacherAssignmentIndex):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __len__(self) -> int:
        return len(self._by_teacher)

    def __contains__(self, teacher_id: object) -> bool:
        return teacher_id in self._by_teacher

    def __repr__(self) -> str:
        return f"TeacherAssignmentIndex({self.as_dict()!r})"
