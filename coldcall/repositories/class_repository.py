# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for classes (rosters)."""
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from coldcall.core.errors import DuplicateUni
from coldcall.core.logging import get_logger
from coldcall.models.tables import classes, cold_calls, students
from coldcall.repositories.base import iso, new_id, utcnow

logger = get_logger(__name__)

CLASS_COLS = (
    classes.c.id, classes.c.user_id, classes.c.name, classes.c.classroom, classes.c.code,
    classes.c.start_time, classes.c.end_time, classes.c.start_date, classes.c.end_date,
    classes.c.created_at, classes.c.updated_at,
)

UPDATABLE_FIELDS = ("name", "classroom", "code", "start_time", "end_time", "start_date", "end_date")


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "name": row.name,
        "classroom": row.classroom,
        "code": row.code,
        "start_time": row.start_time,
        "end_time": row.end_time,
        "start_date": row.start_date,
        "end_date": row.end_date,
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


def visible_class_clause(class_id: str, owner_id: Optional[str]):
    """WHERE clause matching one class, restricted to its owner when scoped."""
    clause = classes.c.id == class_id
    if owner_id is not None:
        clause = clause & (classes.c.user_id == owner_id)
    return clause


class ClassRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def create_class(self, owner_id: str, fields: Dict[str, Any],
                     roster: List[Dict[str, str]]) -> Dict[str, Any]:
        """Insert the class and its initial students in one transaction."""
        class_id = new_id()
        now = utcnow()
        try:
            with self._engine.begin() as conn:
                conn.execute(insert(classes).values(
                    id=class_id, user_id=owner_id, created_at=now, updated_at=now,
                    **{k: fields[k] for k in UPDATABLE_FIELDS},
                ))
                if roster:
                    conn.execute(insert(students), [
                        {"id": new_id(), "class_id": class_id, "name": s["name"],
                         "uni": s["uni"], "created_at": now}
                        for s in roster
                    ])
                row = conn.execute(select(*CLASS_COLS).where(classes.c.id == class_id)).fetchone()
        except IntegrityError as exc:
            logger.warning("Class insert rejected: %s", exc.orig)
            raise DuplicateUni("Duplicate UNI in class roster") from exc
        return _row_to_dict(row)

    def update_class(self, class_id: str, owner_id: Optional[str],
                     changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        values = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        with self._engine.begin() as conn:
            clause = visible_class_clause(class_id, owner_id)
            if values:
                values["updated_at"] = utcnow()
                conn.execute(update(classes).where(clause).values(**values))
            row = conn.execute(select(*CLASS_COLS).where(clause)).fetchone()
        return _row_to_dict(row) if row else None

    def delete_class(self, class_id: str, owner_id: Optional[str]) -> bool:
        """Delete the class together with its students and their cold calls."""
        with self._engine.begin() as conn:
            exists = conn.execute(
                select(classes.c.id).where(visible_class_clause(class_id, owner_id))
            ).fetchone()
            if not exists:
                return False
            conn.execute(delete(cold_calls).where(cold_calls.c.class_id == class_id))
            conn.execute(delete(students).where(students.c.class_id == class_id))
            conn.execute(delete(classes).where(classes.c.id == class_id))
        return True

    # ── Read ───────────────────────────────────────────────────────────

    def get_class(self, class_id: str, owner_id: Optional[str]) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(*CLASS_COLS).where(visible_class_clause(class_id, owner_id))
            ).fetchone()
        return _row_to_dict(row) if row else None

    def list_classes(self, owner_id: Optional[str]) -> List[Dict[str, Any]]:
        counts = (
            select(students.c.class_id, func.count(students.c.id).label("student_count"))
            .group_by(students.c.class_id)
            .subquery()
        )
        stmt = (
            select(*CLASS_COLS, func.coalesce(counts.c.student_count, 0).label("student_count"))
            .select_from(classes.outerjoin(counts, counts.c.class_id == classes.c.id))
            .order_by(classes.c.start_date.desc(), classes.c.name)
        )
        if owner_id is not None:
            stmt = stmt.where(classes.c.user_id == owner_id)
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        result = []
        for r in rows:
            item = _row_to_dict(r)
            item["student_count"] = r.student_count
            result.append(item)
        return result

    def verify_connection(self):
        with self._engine.connect() as conn:
            conn.execute(select(1))
