"""Tests for the background teacher-list load started by select_subject."""
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from routine_app.catalog import Catalog, TeacherListStatus
from routine_app.controller import ScheduleController
from routine_app.models import CellState


class FakeSource:
    def __init__(self, teachers, failing=()):
        self.teachers = teachers
        self.failing  = set(failing)
        self.calls    = []

    def load_subjects(self):
        return {code: code for code in self.teachers}

    def load_teachers(self, subject_code):
        self.calls.append(subject_code)
        if subject_code in self.failing:
            raise ConnectionError("store offline")
        return dict(self.teachers.get(subject_code, {}))

    def save_subject(self, code, name):
        self.teachers.setdefault(code, {})

    def add_teacher(self, subject_code, name):
        tid = f"id-{name}"
        self.teachers[subject_code][tid] = name
        return tid


class SyncExecutor(Executor):
    """Runs the job inside submit()."""

    def submit(self, fn, *args, **kwargs):
        f = Future()
        try:
            f.set_result(fn(*args, **kwargs))
        except Exception as e:
            f.set_exception(e)
        return f


class ManualExecutor(Executor):
    """Holds jobs until the test runs them, in any order."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        f = Future()
        self.jobs.append((f, fn, args, kwargs))
        return f

    def run(self, i):
        f, fn, args, kwargs = self.jobs[i]
        try:
            f.set_result(fn(*args, **kwargs))
        except Exception as e:
            f.set_exception(e)


SOURCE_DATA = {
    "CS101": {"t1": "Dr Smith", "t2": "Prof Ada"},
    "MA101": {"t3": "Dr Euler"},
    "EMPTY": {},
}


def _controller(executor, failing=()):
    source = FakeSource({k: dict(v) for k, v in SOURCE_DATA.items()}, failing)
    catalog = Catalog()
    catalog.refresh_subjects(source)
    return ScheduleController(catalog=catalog, source=source, executor=executor), source


def test_teachers_loaded_after_subject_pick():
    ctl, source = _controller(SyncExecutor())
    rid = ctl.add_routine()
    future = ctl.select_subject(rid, 0, 0, "CS101")
    assert future is not None and future.done()
    assert source.calls == ["CS101"]
    assert ctl.teacher_candidates(rid, 0, 0) == {"t1": "Dr Smith", "t2": "Prof Ada"}
    assert ctl.teacher_status("CS101") is TeacherListStatus.LOADED


def test_zero_teachers_differs_from_not_loaded():
    ctl, _ = _controller(SyncExecutor())
    rid = ctl.add_routine()
    assert ctl.teacher_candidates(rid, 0, 0) is None
    ctl.select_subject(rid, 0, 0, "EMPTY")
    assert ctl.teacher_candidates(rid, 0, 0) == {}


def test_cell_changes_before_fetch_finishes():
    ex = ManualExecutor()
    ctl, _ = _controller(ex)
    rid = ctl.add_routine()
    ctl.select_subject(rid, 0, 0, "CS101")

    assert ctl.get_cell(rid, 0, 0).state is CellState.SUBJECT_ONLY
    assert ctl.teacher_status("CS101") is TeacherListStatus.LOADING
    assert ctl.teacher_candidates(rid, 0, 0) is None

    ex.run(0)
    assert ctl.teacher_candidates(rid, 0, 0) == {"t1": "Dr Smith", "t2": "Prof Ada"}
    # the result only filled the cache
    assert ctl.get_cell(rid, 0, 0).state is CellState.SUBJECT_ONLY


def test_superseded_fetch_is_dropped():
    ex = ManualExecutor()
    ctl, _ = _controller(ex)
    rid = ctl.add_routine()
    ctl.select_subject(rid, 0, 0, "CS101")
    ctl.select_subject(rid, 0, 0, "MA101")

    ex.run(1)   # newer fetch lands first
    ex.run(0)   # stale CS101 result arrives late

    assert ctl.get_cell(rid, 0, 0).subject_code == "MA101"
    assert ctl.teacher_candidates(rid, 0, 0) == {"t3": "Dr Euler"}
    assert ctl.catalog.teachers_for("CS101") is None
    assert ctl.teacher_status("CS101") is TeacherListStatus.NOT_LOADED


def test_stale_fetch_keeps_loading_state_for_other_cell():
    ex = ManualExecutor()
    ctl, _ = _controller(ex)
    rid = ctl.add_routine()
    ctl.select_subject(rid, 0, 0, "CS101")   # job 0
    ctl.select_subject(rid, 1, 0, "CS101")   # job 1
    ctl.select_subject(rid, 0, 0, "MA101")   # job 2
    ex.run(0)
    assert ctl.teacher_status("CS101") is TeacherListStatus.LOADING
    ex.run(1)
    assert ctl.teacher_candidates(rid, 1, 0) == {"t1": "Dr Smith", "t2": "Prof Ada"}


def test_fetch_for_cleared_cell_or_deleted_routine_is_dropped():
    ex = ManualExecutor()
    ctl, _ = _controller(ex)
    r1 = ctl.add_routine()
    r2 = ctl.add_routine()
    ctl.select_subject(r1, 0, 0, "CS101")
    ctl.select_subject(r2, 0, 0, "MA101")
    ctl.clear_cell(r1, 0, 0)
    ctl.delete_routine(r2)
    ex.run(0)
    ex.run(1)
    assert ctl.catalog.teachers_for("CS101") is None
    assert ctl.catalog.teachers_for("MA101") is None


def test_failed_fetch_leaves_subject_only(caplog):
    caplog.set_level(logging.WARNING, logger="routine_app.controller")
    ctl, _ = _controller(SyncExecutor(), failing={"CS101"})
    rid = ctl.add_routine()
    ctl.select_subject(rid, 0, 0, "CS101")

    assert ctl.get_cell(rid, 0, 0).state is CellState.SUBJECT_ONLY
    assert ctl.teacher_status("CS101") is TeacherListStatus.FAILED
    assert ctl.teacher_candidates(rid, 0, 0) is None
    assert "store offline" in ctl.catalog.teacher_error("CS101")
    assert any("Teachers unavailable" in r.getMessage() for r in caplog.records)
    assert len(ctl.index) == 0


def test_refresh_picks_up_new_teachers():
    ctl, source = _controller(SyncExecutor())
    rid = ctl.add_routine()
    ctl.select_subject(rid, 0, 0, "MA101")
    source.teachers["MA101"]["t9"] = "Dr Noether"
    ctl.select_subject(rid, 0, 0, "MA101")
    assert ctl.teacher_candidates(rid, 0, 0) == {"t3": "Dr Euler", "t9": "Dr Noether"}


def test_no_source_means_no_fetch():
    ctl = ScheduleController()
    rid = ctl.add_routine()
    assert ctl.select_subject(rid, 0, 0, "CS101") is None
    assert ctl.teacher_candidates(rid, 0, 0) is None


class GatedCatalog(Catalog):
    """Holds store_teachers() until the test releases it."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def store_teachers(self, code, teachers):
        self.entered.set()
        assert self.release.wait(5)
        super().store_teachers(code, teachers)


class HookedCatalog(Catalog):
    """Runs on_clear once, just before clear_loading() changes anything."""

    on_clear = None

    def clear_loading(self, code):
        hook, self.on_clear = self.on_clear, None
        if hook is not None:
            hook()
        super().clear_loading(code)


def test_still_loading_while_done_callback_runs():
    source = FakeSource({k: dict(v) for k, v in SOURCE_DATA.items()})
    catalog = GatedCatalog()
    catalog.refresh_subjects(source)
    with ThreadPoolExecutor(max_workers=1) as ex:
        ctl = ScheduleController(catalog=catalog, source=source, executor=ex)
        rid = ctl.add_routine()
        fut = ctl.select_subject(rid, 0, 0, "CS101")

        assert catalog.entered.wait(5)
        # the future already reports done, the list is not stored yet
        assert fut.done()
        assert ctl.teacher_candidates(rid, 0, 0) is None
        assert ctl.teachers_loading(rid, 0, 0)
        catalog.release.set()

    assert not ctl.teachers_loading(rid, 0, 0)
    assert ctl.teacher_candidates(rid, 0, 0) == {"t1": "Dr Smith", "t2": "Prof Ada"}


def test_teachers_loading_false_without_subject_or_load():
    ctl, _ = _controller(ManualExecutor())
    rid = ctl.add_routine()
    assert not ctl.teachers_loading(rid, 0, 0)
    ctl.select_subject(rid, 0, 0, "CS101")
    assert ctl.teachers_loading(rid, 0, 0)
    ctl.clear_cell(rid, 0, 0)
    assert not ctl.teachers_loading(rid, 0, 0)


def test_stale_result_does_not_clear_a_newer_load():
    ex = ManualExecutor()
    source = FakeSource({k: dict(v) for k, v in SOURCE_DATA.items()})
    catalog = HookedCatalog()
    catalog.refresh_subjects(source)
    ctl = ScheduleController(catalog=catalog, source=source, executor=ex)
    rid = ctl.add_routine()
    ctl.select_subject(rid, 0, 0, "CS101")   # job 0
    ctl.select_subject(rid, 0, 0, "MA101")   # job 1, job 0 is now stale

    pickers = []

    def pick_same_subject_elsewhere():
        t = threading.Thread(target=ctl.select_subject, args=(rid, 1, 0, "CS101"))
        t.start()
        t.join(0.2)
        pickers.append(t)

    catalog.on_clear = pick_same_subject_elsewhere
    ex.run(0)
    pickers[0].join(5)
    assert not pickers[0].is_alive()

    assert ctl.teacher_status("CS101") is TeacherListStatus.LOADING
    ex.run(2)
    assert ctl.teacher_candidates(rid, 1, 0) == {"t1": "Dr Smith", "t2": "Prof Ada"}
