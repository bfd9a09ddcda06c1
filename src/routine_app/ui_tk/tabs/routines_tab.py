# routines_tab.py - the routine manager: one weekly grid per routine
# days run down the side, time rows across the top, break rows greyed out
#
# every edit goes through the ScheduleController so the teacher index stays in
# step with the cells. conflicts are only flagged (red cell + warning text),
# the assignment itself still goes through
#
# same canvas approach as the old availability grid, a few hundred cells of
# real widgets per routine gets slow

from __future__ import annotations

import tkinter as tk
from tkinter import messagebox, ttk
from typing import Callable, List, Optional, Tuple

from routine_app.catalog import TeacherListStatus
from routine_app.controller import ScheduleController
from routine_app.errors import RoutineError
from routine_app.models import TeachingRow, TimeKey

CELL_W = 150
CELL_H = 46
HDR_W  = 100
HDR_H  = 30

_EMPTY    = "#ffffff"
_FILLED   = "#e3f2e3"
_CONFLICT = "#f8c9c9"
_BREAK    = "#d3d3d3"


class RoutinesTab(ttk.Frame):
    def __init__(self, parent: tk.Widget, controller: ScheduleController,
                 on_change: Callable[[], None]) -> None:
        super().__init__(parent)
        self.ctl = controller
        self._on_change = on_change
        self._current: Optional[int] = None
        self._build()

    def _build(self) -> None:
        top = ttk.Frame(self, padding=6)
        top.pack(fill="x")
        ttk.Button(top, text="Add New Routine", command=self._add_routine).pack(side="left")
        ttk.Label(top, text="  Routine:").pack(side="left")
        self._picker = ttk.Combobox(top, state="readonly", width=14)
        self._picker.pack(side="left", padx=4)
        self._picker.bind("<<ComboboxSelected>>", lambda _: self._pick())
        ttk.Button(top, text="Delete", command=self._delete_routine).pack(side="left", padx=4)

        self._warn_var = tk.StringVar(value="")
        ttk.Label(self, textvariable=self._warn_var, foreground="#c62828",
                  padding=(8, 0)).pack(anchor="w")

        container = ttk.Frame(self)
        container.pack(fill="both", expand=True, padx=6, pady=4)
        self.canvas = tk.Canvas(container, bg="white")
        vsb = ttk.Scrollbar(container, orient="vertical",   command=self.canvas.yview)
        hsb = ttk.Scrollbar(container, orient="horizontal", command=self.canvas.xview)
        self.canvas.configure(yscrollcommand=vsb.set, xscrollcommand=hsb.set)
        hsb.pack(side="bottom", fill="x")
        vsb.pack(side="right",  fill="y")
        self.canvas.pack(side="left", fill="both", expand=True)
        self.canvas.bind("<Button-1>", self._on_click)

    # ── routines ─────────────────────────────────────────────────────────────

    def _add_routine(self) -> None:
        self._current = self.ctl.add_routine()
        self.refresh()
        self._on_change()

    def _delete_routine(self) -> None:
        if self._current is None:
            return
        number = self.ctl.conflict_display_number(self._current)
        if not messagebox.askyesno("Confirm", f"Are you sure you want to delete Routine {number}?"):
            return
        self.ctl.delete_routine(self._current)
        ids = self.ctl.routine_ids
        self._current = ids[-1] if ids else None
        self.refresh()
        self._on_change()

    def _pick(self) -> None:
        i = self._picker.current()
        ids = self.ctl.routine_ids
        self._current = ids[i] if 0 <= i < len(ids) else None
        self._draw()

    def select(self, routine_id: int) -> None:
        self._current = routine_id
        self.refresh()

    # ── drawing ──────────────────────────────────────────────────────────────

    def refresh(self) -> None:
        ids = self.ctl.routine_ids
        if self._current not in ids:
            self._current = ids[0] if ids else None
        # display numbers shift after a delete, so rebuild the labels every time
        self._picker.configure(values=[f"Routine {n}" for n in range(1, len(ids) + 1)])
        if self._current is not None:
            self._picker.current(ids.index(self._current))
        else:
            self._picker.set("")
        self._draw()

    def _draw(self) -> None:
        self.canvas.delete("all")
        self._warn_var.set("")
        if self._current is None:
            self.canvas.create_text(20, 20, anchor="nw",
                                    text="No routines. Click 'Add New Routine' to start.")
            return
        routine = self.ctl.store.get_routine(self._current)
        if routine is None:
            return
        layout  = self.ctl.layout
        catalog = self.ctl.catalog
        clashes = {c.time_key: c for c in self.ctl.conflicts(self._current)}

        W = HDR_W + len(routine.rows) * CELL_W
        H = HDR_H + len(layout.days) * CELL_H
        self.canvas.configure(scrollregion=(0, 0, W, H))

        self.canvas.create_rectangle(0, 0, HDR_W, HDR_H, fill="#d0d8e8", outline="#aaa")
        self.canvas.create_text(HDR_W // 2, HDR_H // 2, text="Day")
        for slot, row in enumerate(routine.rows):
            x0 = HDR_W + slot * CELL_W
            self.canvas.create_rectangle(x0, 0, x0 + CELL_W, HDR_H, fill="#d0d8e8", outline="#aaa")
            self.canvas.create_text(x0 + CELL_W // 2, HDR_H // 2, text=row.time,
                                    font=("TkDefaultFont", 8))

        for day, day_name in enumerate(layout.days):
            y0 = HDR_H + day * CELL_H
            self.canvas.create_rectangle(0, y0, HDR_W, y0 + CELL_H, fill="#e8e8e8", outline="#aaa")
            self.canvas.create_text(HDR_W // 2, y0 + CELL_H // 2, text=day_name)
            for slot, row in enumerate(routine.rows):
                x0 = HDR_W + slot * CELL_W
                if not isinstance(row, TeachingRow):
                    self.canvas.create_rectangle(x0, y0, x0 + CELL_W, y0 + CELL_H,
                                                 fill=_BREAK, outline="#bbb")
                    self.canvas.create_text(x0 + CELL_W // 2, y0 + CELL_H // 2, text=row.label)
                    continue
                cell = row.cells[day]
                clash = clashes.get(TimeKey(day, slot))
                fill = _CONFLICT if clash else (_FILLED if cell.subject_code else _EMPTY)
                self.canvas.create_rectangle(x0, y0, x0 + CELL_W, y0 + CELL_H,
                                             fill=fill, outline="#bbb")
                if cell.subject_code:
                    name = catalog.subject_name(cell.subject_code) or "Unknown"
                    text = f"[{cell.subject_code}] {name}"
                    if cell.teacher_id:
                        text += "\n" + (catalog.teacher_name(cell.subject_code, cell.teacher_id)
                                        or "Teacher not found")
                else:
                    text = "+ Add Subject"
                self.canvas.create_text(x0 + CELL_W // 2, y0 + CELL_H // 2, text=text,
                                        width=CELL_W - 8, font=("TkDefaultFont", 8))

        if clashes:
            parts = [f"{layout.days[k.day]} {routine.rows[k.slot].time}: "
                     f"teacher also in Routine {c.other_number}"
                     for k, c in sorted(clashes.items())]
            self._warn_var.set("⚠ " + ";  ".join(parts))

    def _cell_at(self, event) -> Optional[Tuple[int, int]]:
        cx = self.canvas.canvasx(event.x)
        cy = self.canvas.canvasy(event.y)
        if cx < HDR_W or cy < HDR_H:
            return None
        slot = int((cx - HDR_W) // CELL_W)
        day  = int((cy - HDR_H) // CELL_H)
        routine = self.ctl.store.get_routine(self._current) if self._current else None
        if routine is None or not (0 <= slot < len(routine.rows)) \
                or not (0 <= day < len(self.ctl.layout.days)):
            return None
        if not isinstance(routine.rows[slot], TeachingRow):
            return None
        return day, slot

    def _on_click(self, event) -> None:
        pos = self._cell_at(event)
        if pos is None or self._current is None:
            return
        CellEditor(self, self.ctl, self._current, pos[0], pos[1], on_done=self._after_edit)

    def _after_edit(self) -> None:
        self._draw()
        self._on_change()


class CellEditor(tk.Toplevel):
    """Subject dropdown, then teacher dropdown once the subject's teachers load."""

    POLL_MS = 150

    def __init__(self, parent: tk.Widget, ctl: ScheduleController, routine_id: int,
                 day: int, slot: int, on_done: Callable[[], None]) -> None:
        super().__init__(parent)
        self.ctl, self.rid, self.day, self.slot = ctl, routine_id, day, slot
        self._on_done = on_done
        self._teacher_ids: List[str] = []

        row = ctl.store.get_routine(routine_id).rows[slot]
        self.title(f"{ctl.layout.days[day]}  {row.time}")
        self.resizable(False, False)
        self.transient(parent)

        frm = ttk.Frame(self, padding=10)
        frm.pack(fill="both")
        subjects = ctl.catalog.sorted_subjects()
        self._codes = [s.code for s in subjects]
        ttk.Label(frm, text="Subject").grid(row=0, column=0, sticky="w")
        self._subject_box = ttk.Combobox(frm, state="readonly", width=34,
                                         values=[f"[{s.code}] {s.name}" for s in subjects])
        self._subject_box.grid(row=1, column=0, columnspan=2, pady=(0, 6))
        self._subject_box.bind("<<ComboboxSelected>>", lambda _: self._on_subject())

        ttk.Label(frm, text="Teacher").grid(row=2, column=0, sticky="w")
        self._teacher_box = ttk.Combobox(frm, state="disabled", width=34)
        self._teacher_box.grid(row=3, column=0, columnspan=2, pady=(0, 6))
        self._teacher_box.bind("<<ComboboxSelected>>", lambda _: self._on_teacher())

        self._info_var = tk.StringVar(value="")
        ttk.Label(frm, textvariable=self._info_var, foreground="#c62828",
                  wraplength=260).grid(row=4, column=0, columnspan=2, sticky="w")
        ttk.Button(frm, text="✕ Clear", command=self._clear).grid(row=5, column=0, sticky="w")
        ttk.Button(frm, text="Close", command=self.destroy).grid(row=5, column=1, sticky="e")

        cell = ctl.get_cell(routine_id, day, slot)
        if cell is not None and cell.subject_code in self._codes:
            self._subject_box.current(self._codes.index(cell.subject_code))
            self._fill_teachers()

    def _on_subject(self) -> None:
        code = self._codes[self._subject_box.current()]
        try:
            self.ctl.select_subject(self.rid, self.day, self.slot, code)
        except RoutineError as e:
            messagebox.showerror("Cannot set subject", str(e), parent=self)
            return
        self._on_done()
        self._fill_teachers()

    def _fill_teachers(self) -> None:
        cell = self.ctl.get_cell(self.rid, self.day, self.slot)
        if cell is None or not cell.subject_code:
            return
        candidates = self.ctl.teacher_candidates(self.rid, self.day, self.slot)
        if candidates is None:
            status = self.ctl.teacher_status(cell.subject_code)
            if status is TeacherListStatus.FAILED:
                self._info_var.set("Teachers unavailable for this subject.")
            elif self.ctl.teachers_loading(self.rid, self.day, self.slot):
                self._info_var.set("Loading teachers…")
                self.after(self.POLL_MS, self._fill_teachers)
            else:
                self._info_var.set("")
            self._teacher_box.configure(state="disabled", values=[])
            return
        if not candidates:
            self._info_var.set("No teachers assigned to this subject yet.")
        else:
            self._info_var.set("")
        items = sorted(candidates.items(), key=lambda kv: kv[1].lower())
        self._teacher_ids = [tid for tid, _ in items]
        labels = []
        key = TimeKey(self.day, self.slot)
        for tid, name in items:
            other = self.ctl.conflicting_routine(tid, key, self.rid)
            labels.append(f"{name}  (busy: Routine {other})" if other else name)
        self._teacher_box.configure(state="readonly", values=labels)
        if cell.teacher_id in self._teacher_ids:
            self._teacher_box.current(self._teacher_ids.index(cell.teacher_id))
        else:
            self._teacher_box.set("")

    def _on_teacher(self) -> None:
        tid = self._teacher_ids[self._teacher_box.current()]
        try:
            other = self.ctl.select_teacher(self.rid, self.day, self.slot, tid)
        except RoutineError as e:
            messagebox.showerror("Cannot assign teacher", str(e), parent=self)
            return
        if other is not None:
            messagebox.showwarning(
                "Teacher conflict",
                f"This teacher is already assigned at this time in Routine {other}.",
                parent=self,
            )
        self._on_done()
        self.destroy()

    def _clear(self) -> None:
        self.ctl.clear_cell(self.rid, self.day, self.slot)
        self._on_done()
        self.destroy()
