# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for cold calls and their per-student aggregates."""
from typing import Any, Dict, List, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Engine

from coldcall.models.tables import classes, cold_calls, students
from coldcall.repositories.base import iso, new_id, utcnow


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "class_id": row.class_id,
        "student_id": row.student_id,
        "called_at": iso(row.called_at),
        "score": row.score,
        "notes": row.notes,
    }


class ColdCallRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def create(self, class_id: str, student_id: str) -> Dict[str, Any]:
        """Record one selection; the timestamp is always assigned here."""
        cold_call_id = new_id()
        called_at = utcnow()
        with self._engine.begin() as conn:
            conn.execute(insert(cold_calls).values(
                id=cold_call_id, class_id=class_id, student_id=student_id,
                called_at=called_at, score=None, notes=None,
            ))
        return {
            "id": cold_call_id, "class_id": class_id, "student_id": student_id,
            "called_at": iso(called_at), "score": None, "notes": None,
        }

    def update_score(self, cold_call_id: str, score: Optional[int]) -> None:
        with self._engine.begin() as conn:
            conn.execute(update(cold_calls).where(cold_calls.c.id == cold_call_id).values(score=score))

    # ── Read ───────────────────────────────────────────────────────────

    def get_visible(self, cold_call_id: str, owner_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Look up a cold call, hiding it when its class belongs to someone else."""
        stmt = (
            select(cold_calls)
            .select_from(cold_calls.join(classes, classes.c.id == cold_calls.c.class_id))
            .where(cold_calls.c.id == cold_call_id)
        )
        if owner_id is not None:
            stmt = stmt.where(classes.c.user_id == owner_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_dict(row) if row else None

    def list_for_class(self, class_id: str, limit: int) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(cold_calls, students.c.name.label("student_name"), students.c.uni.label("student_uni"))
                .select_from(cold_calls.join(students, students.c.id == cold_calls.c.student_id))
                .where(cold_calls.c.class_id == class_id)
                .order_by(cold_calls.c.called_at.desc())
                .limit(limit)
            ).fetchall()
        result = []
        for r in rows:
            item = _row_to_dict(r)
            item["student"] = {"id": r.student_id, "name": r.student_name, "uni": r.student_uni}
            result.append(item)
        return result

    def aggregate_by_student(self, class_id: str) -> List[Dict[str, Any]]:
        """Count / sum / scored-count / last call for every student of the class.

        Students never called still appear (LEFT JOIN) with zero counts.
        COUNT(score) and SUM(score) skip NULLs, so unscored calls count toward
        ``times_called`` only.
        """
        stmt = (
            select(
                students.c.id,
                students.c.name,
                students.c.uni,
                func.count(cold_calls.c.id).label("times_called"),
                func.coalesce(func.sum(cold_calls.c.score), 0).label("cumulative_score"),
                func.count(cold_calls.c.score).label("scored_count"),
                func.max(cold_calls.c.called_at).label("last_called_at"),
            )
            .select_from(students.outerjoin(cold_calls, cold_calls.c.student_id == students.c.id))
            .where(students.c.class_id == class_id)
            .group_by(students.c.id, students.c.name, students.c.uni)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            {
                "id": r.id,
                "name": r.name,
                "uni": r.uni,
                "times_called": int(r.times_called),
                "cumulative_score": int(r.cumulative_score),
                "scored_count": int(r.scored_count),
                "last_called_at": r.last_called_at,
            }
            for r in rows
        ]
