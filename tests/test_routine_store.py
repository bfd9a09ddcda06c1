"""Tests for RoutineStore — grid shape, cell rules, routine ids."""
import pytest

from routine_app.errors import CellRuleError
from routine_app.models import (BreakRow, Cell, CellState, GridLayout, RowSpec,
    TeachingRow, TimeKey, default_layout)
from routine_app.routine_store import RoutineStore

LUNCH = 3   # break row index in the default layout


def test_new_routine_has_empty_grid() -> None:
    store = RoutineStore()
    rid   = store.add_routine()
    routine = store.get_routine(rid)
    assert len(routine.rows) == 8
    assert isinstance(routine.rows[LUNCH], BreakRow)
    assert routine.rows[LUNCH].label == "Lunch Break"
    for row in routine.rows:
        if isinstance(row, TeachingRow):
            assert row.cells == [Cell()] * 5


def test_teaching_cells_skip_break_rows() -> None:
    store = RoutineStore()
    rid   = store.add_routine()
    keys  = [key for key, _ in store.teaching_cells(rid)]
    assert len(keys) == 7 * 5
    assert all(key.slot != LUNCH for key in keys)
    assert TimeKey(4, 7) in keys


def test_ids_are_never_reused() -> None:
    store = RoutineStore()
    r1 = store.add_routine()
    r2 = store.add_routine()
    store.remove_routine(r1)
    r3 = store.add_routine()
    assert r3 not in (r1, r2)
    assert store.routine_ids == (r2, r3)


def test_remove_unknown_routine_is_noop() -> None:
    store = RoutineStore()
    store.add_routine()
    store.remove_routine(999)
    assert len(store) == 1


def test_set_and_get_cell() -> None:
    store = RoutineStore()
    rid   = store.add_routine()
    store.set_cell(rid, 2, 1, "CS101", "T1")
    cell = store.get_cell(rid, 2, 1)
    assert cell == Cell("CS101", "T1")
    assert cell.state is CellState.SUBJECT_AND_TEACHER
    # neighbours untouched (cells are not shared between positions)
    assert store.get_cell(rid, 1, 1) == Cell()
    assert store.get_cell(rid, 2, 0) == Cell()


def test_teacher_without_subject_rejected() -> None:
    store = RoutineStore()
    rid   = store.add_routine()
    with pytest.raises(CellRuleError):
        store.set_cell(rid, 0, 0, "", "T1")
    assert store.get_cell(rid, 0, 0) == Cell()


def test_break_row_rejected() -> None:
    store = RoutineStore()
    rid   = store.add_routine()
    with pytest.raises(CellRuleError, match="break"):
        store.set_cell(rid, 0, LUNCH, "CS101", "")
    with pytest.raises(CellRuleError):
        store.get_cell(rid, 0, LUNCH)


@pytest.mark.parametrize("day,slot", [(5, 0), (-1, 0), (0, 8), (0, -1)])
def test_outside_grid_rejected(day, slot) -> None:
    store = RoutineStore()
    rid   = store.add_routine()
    with pytest.raises(CellRuleError, match="outside"):
        store.set_cell(rid, day, slot, "CS101", "")


def test_unknown_routine_cell_access() -> None:
    store = RoutineStore()
    assert store.get_cell(42, 0, 0) is None
    store.set_cell(42, 0, 0, "CS101", "")   # no-op, no error
    assert len(store) == 0


def test_custom_layout_shape() -> None:
    layout = GridLayout(
        days=["Sun", "Mon"],
        rows=[RowSpec("8:00"), RowSpec("9:00", is_break=True, label="Tea"), RowSpec("10:00")],
    )
    store = RoutineStore(layout)
    rid   = store.add_routine()
    assert len(list(store.teaching_cells(rid))) == 4
    assert store.layout.time_labels == ["8:00", "9:00", "10:00"]


def test_invalid_layout_rejected() -> None:
    bad = default_layout()
    bad.rows = [RowSpec("12:00", is_break=True, label="Lunch")]
    with pytest.raises(ValueError, match="teaching row"):
        RoutineStore(bad)
