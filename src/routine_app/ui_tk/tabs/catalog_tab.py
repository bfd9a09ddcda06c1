"""
Catalog Tab — add/update subjects, add teachers to a subject, bulk import.

Two small forms on the left mirror the original entry page:
  1. Add / Update a Subject   (code + name; code may not contain '/')
  2. Add a Teacher to a Subject

The tree on the right lists subjects with their teachers underneath.

ttk.Treeview reference:
https://docs.python.org/3/library/tkinter.ttk.html#treeview
"""

from __future__ import annotations

import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from typing import Callable, List

from routine_app.catalog import Catalog, CatalogSource
from routine_app.errors import CatalogError
from routine_app.importer import read_records


class CatalogTab(ttk.Frame):
    def __init__(self, parent: tk.Widget, catalog: Catalog, source: CatalogSource,
                 on_change: Callable[[], None]) -> None:
        super().__init__(parent)
        self._catalog   = catalog
        self._source    = source
        self._on_change = on_change
        self._subject_codes: List[str] = []
        self._build()

    # ── layout ───────────────────────────────────────────────────────────────

    def _build(self) -> None:
        left = ttk.Frame(self, padding=8)
        left.pack(side="left", fill="y")

        frm = ttk.LabelFrame(left, text="1. Add / Update a Subject", padding=8)
        frm.pack(fill="x", pady=(0, 10))
        self._code_var = tk.StringVar()
        self._name_var = tk.StringVar()
        ttk.Label(frm, text="Subject Code").grid(row=0, column=0, sticky="w")
        ttk.Entry(frm, textvariable=self._code_var, width=28).grid(row=1, column=0, pady=(0, 6))
        ttk.Label(frm, text="Subject Name").grid(row=2, column=0, sticky="w")
        ttk.Entry(frm, textvariable=self._name_var, width=28).grid(row=3, column=0, pady=(0, 6))
        ttk.Button(frm, text="Save Subject", command=self._save_subject).grid(row=4, column=0)

        frm = ttk.LabelFrame(left, text="2. Add a Teacher to a Subject", padding=8)
        frm.pack(fill="x", pady=(0, 10))
        ttk.Label(frm, text="Select Subject").grid(row=0, column=0, sticky="w")
        self._subject_box = ttk.Combobox(frm, state="readonly", width=26)
        self._subject_box.grid(row=1, column=0, pady=(0, 6))
        self._teacher_var = tk.StringVar()
        ttk.Label(frm, text="New Teacher Name").grid(row=2, column=0, sticky="w")
        ttk.Entry(frm, textvariable=self._teacher_var, width=28).grid(row=3, column=0, pady=(0, 6))
        ttk.Button(frm, text="Add Teacher", command=self._add_teacher).grid(row=4, column=0)

        ttk.Button(left, text="Import spreadsheet…", command=self._import).pack(fill="x")

        self._status_var = tk.StringVar(value="")
        ttk.Label(left, textvariable=self._status_var, wraplength=220,
                  foreground="#555").pack(fill="x", pady=8)

        right = ttk.Frame(self, padding=8)
        right.pack(side="left", fill="both", expand=True)
        self.tree = ttk.Treeview(right, columns=("name",), show="tree headings", height=18)
        self.tree.heading("#0", text="Code")
        self.tree.heading("name", text="Subject / Teacher")
        self.tree.column("#0", width=140)
        self.tree.column("name", width=280)
        sb = ttk.Scrollbar(right, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=sb.set)
        sb.pack(side="right", fill="y")
        self.tree.pack(side="left", fill="both", expand=True)

    # ── actions ──────────────────────────────────────────────────────────────

    def _save_subject(self) -> None:
        try:
            subject = self._catalog.add_subject(self._code_var.get(), self._name_var.get(),
                                                self._source)
        except CatalogError as e:
            self._status_var.set(f"⚠ {e}")
            return
        self._status_var.set(f"Subject '{subject.name}' saved/updated.")
        self._code_var.set("")
        self._name_var.set("")
        self.refresh()
        self._on_change()

    def _add_teacher(self) -> None:
        i = self._subject_box.current()
        code = self._subject_codes[i] if i >= 0 else ""
        try:
            teacher = self._catalog.add_teacher(code, self._teacher_var.get(), self._source)
        except CatalogError as e:
            self._status_var.set(f"⚠ {e}")
            return
        self._status_var.set(f"Teacher '{teacher.name}' added to subject '{code}'.")
        self._teacher_var.set("")
        self.refresh()
        self._on_change()

    def _import(self) -> None:
        path = filedialog.askopenfilename(
            title="Import subjects and teachers",
            filetypes=[("Spreadsheets", "*.xlsx *.xlsm *.csv"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            records, errors = read_records(path)
        except CatalogError as e:
            messagebox.showerror("Import error", str(e))
            return
        summary = self._catalog.apply_import(records, self._source)
        problems = errors + summary.errors
        msg = (f"{summary.subjects_upserted} subject row(s) imported, "
               f"{summary.teachers_added} teacher(s) added.")
        if problems:
            msg += "\n\nSkipped:\n" + "\n".join(f"  * {p}" for p in problems[:20])
            messagebox.showwarning("Import finished with problems", msg)
        else:
            messagebox.showinfo("Import finished", msg)
        self.refresh()
        self._on_change()

    # ── public API ───────────────────────────────────────────────────────────

    def refresh(self) -> None:
        subjects = self._catalog.sorted_subjects()
        self._subject_codes = [s.code for s in subjects]
        self._subject_box.configure(values=[f"[{s.code}] {s.name}" for s in subjects])

        self.tree.delete(*self.tree.get_children())
        for s in subjects:
            node = self.tree.insert("", "end", text=s.code, values=(s.name,))
            teachers = self._catalog.teachers_for(s.code)
            if teachers is None:
                teachers = self._source.load_teachers(s.code)
                self._catalog.store_teachers(s.code, teachers)
            for name in sorted(teachers.values(), key=str.lower):
                self.tree.insert(node, "end", text="", values=(name,))
