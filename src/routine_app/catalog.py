"""
Subject / teacher catalog — read-mostly reference data for the routines.

The catalog is owned by an external store (CatalogSource). This module keeps
an in-memory cache of it:

  subjects  code -> display name, loaded up front
  teachers  code -> {teacher_id -> display name}, loaded on demand per subject

A subject with no cached teacher list is "not loaded yet", which is not the
same thing as "has zero teachers" ({}). teacher_status() tells them apart.

Validation of new subjects/teachers follows the original entry forms: code
and name are required after trimming, and a code may not contain '/'
because it doubles as a document key in the store.
"""

from __future__ import annotations

import enum
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

from routine_app.errors import CatalogError
from routine_app.models import ImportRecord, Subject, Teacher

logger = logging.getLogger(__name__)


class CatalogSource(Protocol):
    """What the catalog needs from the persistent subject/teacher store."""

    def load_subjects(self) -> Dict[str, str]: ...

    def load_teachers(self, subject_code: str) -> Dict[str, str]: ...

    def save_subject(self, code: str, name: str) -> None: ...

    def add_teacher(self, subject_code: str, name: str) -> str: ...


class TeacherListStatus(enum.Enum):
    NOT_LOADED = "not_loaded"
    LOADING    = "loading"
    LOADED     = "loaded"
    FAILED     = "failed"


@dataclass
class ImportSummary:
    subjects_upserted: int       = 0
    teachers_added:    int       = 0
    teachers_skipped:  int       = 0
    errors:            List[str] = field(default_factory=list)


def validate_subject(code: str, name: str) -> Subject:
    code, name = (code or "").strip(), (name or "").strip()
    if not code or not name:
        raise CatalogError("Subject code and name are required.")
    if "/" in code:
        raise CatalogError(f"Subject code cannot contain '/': {code!r}")
    return Subject(code=code, name=name)


class Catalog:
    def __init__(self, subjects: Optional[Dict[str, str]] = None) -> None:
        self._lock = threading.Lock()
        self._subjects: Dict[str, str]                 = dict(subjects or {})
        self._teachers: Dict[str, Dict[str, str]]      = {}
        self._status:   Dict[str, TeacherListStatus]   = {}
        self._errors:   Dict[str, str]                 = {}

    # ---- subjects ------------------------------------------------------------

    def refresh_subjects(self, source: CatalogSource) -> int:
        """Reload subject names from the store; cached teacher lists are kept."""
        subjects = source.load_subjects()
        with self._lock:
            self._subjects = dict(subjects)
        logger.info("Loaded %d subject(s)", len(subjects))
        return len(subjects)

    def has_subject(self, code: str) -> bool:
        return code in self._subjects

    def subject_name(self, code: str) -> Optional[str]:
        return self._subjects.get(code)

    def sorted_subjects(self) -> List[Subject]:
        """Subjects sorted by display name, then code."""
        with self._lock:
            items = list(self._subjects.items())
        return [Subject(code=c, name=n)
                for c, n in sorted(items, key=lambda kv: (kv[1].lower(), kv[0]))]

    def add_subject(self, code: str, name: str,
                    source: Optional[CatalogSource] = None) -> Subject:
        """Create or rename a subject. Existing teachers are left untouched."""
        subject = validate_subject(code, name)
        if source is not None:
            source.save_subject(subject.code, subject.name)
        with self._lock:
            self._subjects[subject.code] = subject.name
        return subject

    # ---- teachers ------------------------------------------------------------

    def teacher_status(self, code: str) -> TeacherListStatus:
        return self._status.get(code, TeacherListStatus.NOT_LOADED)

    def teacher_error(self, code: str) -> Optional[str]:
        return self._errors.get(code)

    def teachers_for(self, code: str) -> Optional[Dict[str, str]]:
        """Cached {teacher_id: name} for a subject, or None when not loaded."""
        with self._lock:
            teachers = self._teachers.get(code)
            return dict(teachers) if teachers is not None else None

    def teacher_name(self, code: str, teacher_id: str) -> Optional[str]:
        return (self._teachers.get(code) or {}).get(teacher_id)

    def mark_loading(self, code: str) -> None:
        with self._lock:
            if self._status.get(code) != TeacherListStatus.LOADED:
                self._status[code] = TeacherListStatus.LOADING

    def clear_loading(self, code: str) -> None:
        with self._lock:
            if self._status.get(code) == TeacherListStatus.LOADING:
                del self._status[code]

    def store_teachers(self, code: str, teachers: Dict[str, str]) -> None:
        with self._lock:
            self._teachers[code] = dict(teachers)
            self._status[code]   = TeacherListStatus.LOADED
            self._errors.pop(code, None)

    def mark_failed(self, code: str, reason: str) -> None:
        with self._lock:
            # a list that loaded earlier stays usable
            if code in self._teachers:
                self._status[code] = TeacherListStatus.LOADED
            else:
                self._status[code] = TeacherListStatus.FAILED
            self._errors[code] = reason

    def add_teacher(self, code: str, name: str,
                    source: Optional[CatalogSource] = None) -> Teacher:
        code, name = (code or "").strip(), (name or "").strip()
        if not code:
            raise CatalogError("Please select a subject first.")
        if not self.has_subject(code):
            raise CatalogError(f"Unknown subject '{code}'.")
        if not name:
            raise CatalogError("Please enter a teacher name.")

        if source is not None:
            teacher_id = source.add_teacher(code, name)
        else:
            teacher_id = uuid.uuid4().hex[:20]
        with self._lock:
            cached = self._teachers.get(code)
            if cached is not None:
                cached[teacher_id] = name
            elif source is None:
                # no backing store: this catalog is the whole truth
                self._teachers[code] = {teacher_id: name}
                self._status[code]   = TeacherListStatus.LOADED
        return Teacher(id=teacher_id, name=name)

    # ---- bulk import ---------------------------------------------------------

    def apply_import(self, records: Iterable[ImportRecord],
                     source: Optional[CatalogSource] = None) -> ImportSummary:
        """Upsert each record's subject and append its teacher when given.

        A teacher whose name already exists for the subject is skipped, so
        importing the same sheet twice does not duplicate anyone. Routines
        and the teacher index are never touched.
        """
        summary = ImportSummary()
        for i, rec in enumerate(records, 1):
            try:
                subject = self.add_subject(rec.code, rec.name, source)
            except CatalogError as e:
                summary.errors.append(f"record {i}: {e}")
                continue
            summary.subjects_upserted += 1

            teacher = (rec.teacher or "").strip()
            if not teacher:
                continue
            known = self._known_teacher_names(subject.code, source)
            if teacher in known:
                summary.teachers_skipped += 1
                continue
            self.add_teacher(subject.code, teacher, source)
            summary.teachers_added += 1

        logger.info(
            "Import: %d subject(s), %d teacher(s) added, %d skipped, %d error(s)",
            summary.subjects_upserted, summary.teachers_added,
            summary.teachers_skipped, len(summary.errors),
        )
        return summary

    def _known_teacher_names(self, code: str,
                             source: Optional[CatalogSource]) -> set:
        cached = self.teachers_for(code)
        if cached is None and source is not None:
            cached = source.load_teachers(code)
            self.store_teachers(code, cached)
        return set((cached or {}).values())
