"""
Command-line interface for the weekly routine builder.

Routines themselves live only inside a running session (see the desktop
app); the CLI looks after the subject/teacher catalog and can render blank
grids for printing.

Usage examples:
    python -m routine_app.cli import subjects.xlsx --catalog data/catalog.json
    python -m routine_app.cli list --catalog data/catalog.json
    python -m routine_app.cli template --out blank.docx --routines 2

Exit codes:
    0  command completed
    1  bad arguments, unreadable file, or every import row was rejected
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from routine_app.catalog import Catalog
from routine_app.controller import ScheduleController
from routine_app.errors import CatalogError, LayoutError
from routine_app.export import EXPORT_SUFFIXES, export_routines, write_export
from routine_app.importer import read_records
from routine_app.io_json import JsonCatalogStore, load_layout
from routine_app.logging_setup import setup_logging

DEFAULT_CATALOG = "data/catalog.json"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="routine-cli",
        description="Weekly routine builder — catalog and export tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  routine-cli import subjects.xlsx --catalog data/catalog.json\n"
            "  routine-cli template --layout layout.json --out blank.xlsx\n"
        ),
    )
    parser.add_argument("--log-level", default="WARNING", metavar="LEVEL",
                        help="logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_imp = sub.add_parser("import", help="bulk-import subjects/teachers from .xlsx or .csv")
    p_imp.add_argument("file", metavar="FILE", help="spreadsheet with code, name[, teacher]")
    p_imp.add_argument("--catalog", default=DEFAULT_CATALOG, metavar="FILE",
                       help=f"catalog JSON to update (default: {DEFAULT_CATALOG})")
    p_imp.add_argument("--sheet", default=None, help="worksheet name (default: first)")

    p_list = sub.add_parser("list", help="print subjects and their teachers")
    p_list.add_argument("--catalog", default=DEFAULT_CATALOG, metavar="FILE")

    p_tpl = sub.add_parser("template", help="write empty routine grids for printing")
    p_tpl.add_argument("--layout", default=None, metavar="FILE",
                       help="grid layout JSON (default: built-in weekday grid)")
    p_tpl.add_argument("--out", required=True, metavar="FILE", help=".docx, .xlsx or .csv output")
    p_tpl.add_argument("--routines", type=int, default=1, help="number of grids (default: 1)")
    return parser


def _cmd_import(args: argparse.Namespace) -> int:
    records, errors = read_records(args.file, sheet=args.sheet)
    for err in errors:
        print(f"[WARNING] {err}")
    if not records:
        print("[ERROR] No valid rows to import.", file=sys.stderr)
        return 1

    store   = JsonCatalogStore(args.catalog)
    catalog = Catalog()
    catalog.refresh_subjects(store)
    summary = catalog.apply_import(records, source=store)
    for err in summary.errors:
        print(f"[WARNING] {err}")
    print(
        f"Imported {summary.subjects_upserted} subject row(s): "
        f"{summary.teachers_added} teacher(s) added, "
        f"{summary.teachers_skipped} already present."
    )
    print(f"Catalog written to: {args.catalog}")
    return 0


def _cmd_list(args: argparse.Namespace) -> int:
    store   = JsonCatalogStore(args.catalog)
    catalog = Catalog()
    catalog.refresh_subjects(store)
    subjects = catalog.sorted_subjects()
    if not subjects:
        print("Catalog is empty.")
        return 0
    for subject in subjects:
        teachers = store.load_teachers(subject.code)
        print(f"[{subject.code}] {subject.name}")
        for name in sorted(teachers.values(), key=str.lower):
            print(f"    - {name}")
    return 0


def _cmd_template(args: argparse.Namespace) -> int:
    if args.routines < 1:
        print("[ERROR] --routines must be >= 1", file=sys.stderr)
        return 1
    if Path(args.out).suffix.lower() not in EXPORT_SUFFIXES:
        print(f"[ERROR] --out must end in one of {', '.join(EXPORT_SUFFIXES)}", file=sys.stderr)
        return 1
    controller = ScheduleController(layout=load_layout(args.layout))
    for _ in range(args.routines):
        controller.add_routine()
    tables = export_routines(controller)
    write_export(tables, args.out)
    print(f"Wrote {len(tables)} empty routine(s) to: {args.out}")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = _build_parser().parse_args(argv)
    setup_logging(args.log_level)

    commands = {"import": _cmd_import, "list": _cmd_list, "template": _cmd_template}
    try:
        code = commands[args.command](args)
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e.filename}", file=sys.stderr)
        code = 1
    except (CatalogError, LayoutError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
