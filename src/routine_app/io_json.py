"""
JSON persistence for the subject/teacher catalog and the grid layout.

Uses only the Python standard-library json module.  The docs warn that
parsing large or deeply nested JSON from untrusted sources can be expensive,
so basic structural validation is applied before domain objects are built.

Reference: Python docs — json
https://docs.python.org/3/library/json.html

Catalog file shape (subjects keyed by code, teachers nested per subject the
way the document store nests its teachers sub-collection):

    {"subjects": {"CS101": {"name": "Intro to CS",
                            "teachers": {"3f9c...": {"name": "Dr Smith"}}}}}
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List

from routine_app.catalog import validate_subject
from routine_app.errors import CatalogError, LayoutError
from routine_app.models import GridLayout, RowSpec, default_layout

logger = logging.getLogger(__name__)


def _require(obj: Dict[str, Any], key: str, ctx: str, error=LayoutError) -> Any:
    if key not in obj:
        raise error(f"Missing required key '{key}' in {ctx}")
    return obj[key]


def _as_list(obj: Any, ctx: str, error=LayoutError) -> List[Any]:
    if not isinstance(obj, list):
        raise error(f"Expected a JSON array in {ctx}, got {type(obj).__name__}")
    return obj


def _as_dict(obj: Any, ctx: str, error=LayoutError) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        raise error(
            f"Expected a JSON object in {ctx}, got {type(obj).__name__}"
        )
    return obj


def _read_json(path: Path, error) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise error(f"{path}: not valid JSON ({e})") from e


def _write_json(obj: Any, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        # ensure_ascii=False preserves accented names.
        # sort_keys=True keeps diffs readable in version control.
        json.dump(obj, f, ensure_ascii=False, indent=2, sort_keys=True)


# ── grid layout ──────────────────────────────────────────────────────────────

def load_layout(path: str | Path | None) -> GridLayout:
    """Load and validate a GridLayout; no path or a missing file = default."""
    if path is None:
        return default_layout()
    p = Path(path)
    if not p.exists():
        logger.info("Layout file %s not found, using the default grid", p)
        return default_layout()

    raw  = _as_dict(_read_json(p, LayoutError), "root")
    days = [str(d) for d in _as_list(_require(raw, "days", "root"), "days")]
    rows_raw = _as_list(_require(raw, "rows", "root"), "rows")

    rows = [
        RowSpec(
            time     = str(_require(_as_dict(r, f"rows[{i}]"), "time", f"rows[{i}]")),
            is_break = bool(r.get("is_break", False)),
            label    = str(r.get("label") or ""),
        )
        for i, r in enumerate(rows_raw)
    ]
    layout = GridLayout(days=days, rows=rows)
    try:
        layout.validate()
    except ValueError as e:
        raise LayoutError(str(e)) from e
    return layout


def save_layout(layout: GridLayout, path: str | Path) -> None:
    layout.validate()
    _write_json(layout.to_dict(), Path(path))


# ── catalog store ────────────────────────────────────────────────────────────

class JsonCatalogStore:
    """File-backed CatalogSource. A missing file is an empty catalog.

    Every call re-reads the file, so edits made by another process (or the
    CLI importer) show up on the next load.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        raw = _as_dict(_read_json(self.path, CatalogError), "root", CatalogError)
        subjects = _as_dict(raw.get("subjects") or {}, "subjects", CatalogError)
        for code, doc in subjects.items():
            ctx = f"subjects[{code!r}]"
            _as_dict(doc, ctx, CatalogError)
            _require(doc, "name", ctx, CatalogError)
            _as_dict(doc.get("teachers") or {}, f"{ctx}.teachers", CatalogError)
        return subjects

    def _save(self, subjects: Dict[str, Dict[str, Any]]) -> None:
        _write_json({"subjects": subjects}, self.path)

    def load_subjects(self) -> Dict[str, str]:
        return {code: str(doc["name"]) for code, doc in self._load().items()}

    def load_teachers(self, subject_code: str) -> Dict[str, str]:
        doc = self._load().get(subject_code)
        if doc is None:
            return {}
        return {
            tid: str(_as_dict(t, f"teacher {tid!r}", CatalogError).get("name", ""))
            for tid, t in (doc.get("teachers") or {}).items()
        }

    def save_subject(self, code: str, name: str) -> None:
        subject  = validate_subject(code, name)
        subjects = self._load()
        # merge: renaming a subject keeps its teachers
        doc = subjects.setdefault(subject.code, {})
        doc["name"] = subject.name
        doc.setdefault("teachers", {})
        self._save(subjects)

    def add_teacher(self, subject_code: str, name: str) -> str:
        subjects = self._load()
        if subject_code not in subjects:
            raise CatalogError(f"Unknown subject '{subject_code}'.")
        teacher_id = uuid.uuid4().hex[:20]
        teachers = subjects[subject_code].setdefault("teachers", {})
        teachers[teacher_id] = {"name": name}
        self._save(subjects)
        return teacher_id
