"""
Main application window — Weekly Routine Builder.

Two tabs:
  1. Subjects & Teachers — the catalog forms and spreadsheet import
  2. Routines            — one grid per routine, teacher clashes flagged

Start workflow:
  Step 1  add subjects and the teachers who can take them
  Step 2  add routines and fill the grids; a teacher already booked at the
          same time in another routine is flagged in red, not blocked

Routines are not saved; export them with File -> Export before closing.

Shortcuts:  Ctrl+N  new routine,  Ctrl+E  export
"""

from __future__ import annotations

import argparse
import logging
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import List, Optional

from routine_app.catalog import Catalog
from routine_app.controller import ConflictPolicy, ScheduleController
from routine_app.errors import CatalogError, LayoutError
from routine_app.export import export_routines, write_export
from routine_app.io_json import JsonCatalogStore, load_layout
from routine_app.logging_setup import setup_logging
from routine_app.ui_tk.tabs import CatalogTab, RoutinesTab

logger = logging.getLogger(__name__)


class App(tk.Tk):
    def __init__(self, controller: ScheduleController, source: JsonCatalogStore) -> None:
        super().__init__()
        self.title("Weekly Routine Builder")
        self.geometry("1280x640")
        self.minsize(820, 480)

        self.ctl     = controller
        self._source = source

        self._build_menu()
        self._build_tabs()
        self._build_statusbar()
        self.protocol("WM_DELETE_WINDOW", self.on_exit)

        self._load_catalog()
        self.ctl.add_routine()   # start with one routine, as before
        self._tab_routines.refresh()

    # ---- menu ----------------------------------------------------------------

    def _build_menu(self) -> None:
        menu = tk.Menu(self)
        self.configure(menu=menu)

        file_menu = tk.Menu(menu, tearoff=False)
        menu.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="New Routine", accelerator="Ctrl+N", command=self.on_new_routine)
        file_menu.add_command(label="Reload Catalog",                    command=self._load_catalog)
        file_menu.add_separator()
        file_menu.add_command(label="Export...",   accelerator="Ctrl+E", command=self.on_export)
        file_menu.add_separator()
        file_menu.add_command(label="Exit",                              command=self.on_exit)

        self.bind_all("<Control-n>", lambda _: self.on_new_routine())
        self.bind_all("<Control-e>", lambda _: self.on_export())

    # ---- tabs ----------------------------------------------------------------

    def _build_tabs(self) -> None:
        self._nb = ttk.Notebook(self)
        self._nb.pack(fill="both", expand=True, padx=6, pady=6)

        self._tab_catalog  = CatalogTab(self._nb, self.ctl.catalog, self._source,
                                        on_change=self._on_catalog_change)
        self._tab_routines = RoutinesTab(self._nb, self.ctl, on_change=self._mark_dirty)

        self._nb.add(self._tab_catalog,  text="Subjects & Teachers")
        self._nb.add(self._tab_routines, text="Routines")

    def _build_statusbar(self) -> None:
        self._status_var = tk.StringVar(value="")
        bar = ttk.Label(
            self,
            textvariable=self._status_var,
            relief="sunken",
            anchor="w",
            padding=(6, 2),
        )
        bar.pack(side="bottom", fill="x")

    # ---- actions -------------------------------------------------------------

    def _load_catalog(self) -> None:
        try:
            n = self.ctl.catalog.refresh_subjects(self._source)
        except CatalogError as e:
            messagebox.showerror("Catalog error", f"Failed to load subjects.\n\n{e}")
            self._status_var.set("Failed to load subjects.")
            return
        self._tab_catalog.refresh()
        self._status_var.set(f"{n} subject(s) loaded from {self._source.path}")

    def on_new_routine(self) -> None:
        rid = self.ctl.add_routine()
        self._tab_routines.select(rid)
        self._nb.select(1)
        self._mark_dirty()

    def on_export(self) -> None:
        if not self.ctl.routine_ids:
            messagebox.showinfo("Nothing to export", "Add a routine first.")
            return
        path = filedialog.asksaveasfilename(
            title="Export routines",
            defaultextension=".docx",
            initialfile="weekly_schedule.docx",
            filetypes=[("Word document", "*.docx"), ("Excel workbook", "*.xlsx"),
                       ("CSV files", "*.csv")],
        )
        if not path:
            return
        tables = export_routines(self.ctl)
        try:
            write_export(tables, path)
        except (OSError, ValueError) as e:
            logger.error("Export to %s failed: %s", path, e)
            messagebox.showerror("Export error", f"Failed to export. Please try again.\n\n{e}")
            return
        self._status_var.set(f"Exported {len(tables)} routine(s) to {path}")

    def on_exit(self) -> None:
        if self.ctl.routine_ids and not messagebox.askyesno(
            "Quit?", "Routines are not saved. Quit anyway?"
        ):
            return
        self.ctl.shutdown()
        self.destroy()

    # ---- helpers -------------------------------------------------------------

    def _on_catalog_change(self) -> None:
        self._tab_routines.refresh()

    def _mark_dirty(self) -> None:
        n = len(self.ctl.routine_ids)
        self._status_var.set(unsaved_status(n))


def unsaved_status(n: int) -> str:
    return f"{n} routine(s) open, unsaved. Use File > Export"


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Weekly routine builder (desktop)")
    parser.add_argument("--catalog", default="data/catalog.json", metavar="FILE")
    parser.add_argument("--layout",  default=None, metavar="FILE")
    parser.add_argument("--block-conflicts", action="store_true",
                        help="refuse double-booked teachers instead of flagging them")
    parser.add_argument("--log-level", default="INFO", metavar="LEVEL")
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        layout = load_layout(args.layout)
    except LayoutError as e:
        parser.error(str(e))

    source = JsonCatalogStore(Path(args.catalog))
    controller = ScheduleController(
        layout=layout,
        catalog=Catalog(),
        source=source,
        policy=ConflictPolicy.BLOCK if args.block_conflicts else ConflictPolicy.WARN,
    )
    app = App(controller, source)
    app.mainloop()


if __name__ == "__main__":
    main()
