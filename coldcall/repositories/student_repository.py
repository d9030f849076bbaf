# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for roster members."""
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from coldcall.core.errors import DuplicateUni
from coldcall.core.logging import get_logger
from coldcall.models.tables import cold_calls, students
from coldcall.repositories.base import iso, new_id, utcnow

logger = get_logger(__name__)

STUDENT_COLS = (students.c.id, students.c.class_id, students.c.name, students.c.uni, students.c.created_at)


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "class_id": row.class_id,
        "name": row.name,
        "uni": row.uni,
        "created_at": iso(row.created_at),
    }


class StudentRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def add_students(self, class_id: str, roster: List[Dict[str, str]]) -> List[Dict[str, Any]]:
        now = utcnow()
        rows = [
            {"id": new_id(), "class_id": class_id, "name": s["name"], "uni": s["uni"], "created_at": now}
            for s in roster
        ]
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(students), rows)
        except IntegrityError as exc:
            logger.warning("Student insert rejected class=%s: %s", class_id, exc.orig)
            raise DuplicateUni("Duplicate UNI in class roster") from exc
        return [{**r, "created_at": iso(now)} for r in rows]

    def update_student(self, class_id: str, student_id: str,
                       changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        values = {k: v for k, v in changes.items() if k in ("name", "uni")}
        clause = (students.c.id == student_id) & (students.c.class_id == class_id)
        try:
            with self._engine.begin() as conn:
                if values:
                    conn.execute(update(students).where(clause).values(**values))
                row = conn.execute(select(*STUDENT_COLS).where(clause)).fetchone()
        except IntegrityError as exc:
            raise DuplicateUni("Duplicate UNI in class roster") from exc
        return _row_to_dict(row) if row else None

    def delete_student(self, class_id: str, student_id: str) -> Optional[int]:
        """Remove a student and every cold call on them as one unit.

        Returns the number of cold calls removed, or None if the student is
        not on this class.
        """
        clause = (students.c.id == student_id) & (students.c.class_id == class_id)
        with self._engine.begin() as conn:
            exists = conn.execute(select(students.c.id).where(clause)).fetchone()
            if not exists:
                return None
            removed = conn.execute(
                delete(cold_calls).where(cold_calls.c.student_id == student_id)
            ).rowcount or 0
            conn.execute(delete(students).where(clause))
        return removed

    # ── Read ───────────────────────────────────────────────────────────

    def list_students(self, class_id: str) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(*STUDENT_COLS)
                .where(students.c.class_id == class_id)
                .order_by(students.c.name, students.c.uni)
            ).fetchall()
        return [_row_to_dict(r) for r in rows]

    def get_student(self, class_id: str, student_id: str) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(*STUDENT_COLS)
                .where(students.c.id == student_id)
                .where(students.c.class_id == class_id)
            ).fetchone()
        return _row_to_dict(row) if row else None

    def existing_unis(self, class_id: str) -> Set[str]:
        with self._engine.connect() as conn:
            rows = conn.execute(select(students.c.uni).where(students.c.class_id == class_id)).fetchall()
        return {r.uni for r in rows}
