# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Class & roster management. Business logic for CRUD operations.
Coordinates repository writes with metrics, logging, and validation.
"""

from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

from coldcall.core.config import settings
from coldcall.core.errors import DuplicateUni, NotFound
from coldcall.core.logging import get_logger
from coldcall.core.security import AuthContext
from coldcall.metrics import CLASSES_CREATED, STUDENTS_ADDED, STUDENTS_REMOVED
from coldcall.repositories.class_repository import ClassRepository
from coldcall.repositories.cold_call_repository import ColdCallRepository
from coldcall.repositories.student_repository import StudentRepository
from coldcall.services import roster_csv

logger = get_logger(__name__)


def compute_status(end_date: date, today: Optional[date] = None) -> str:
    """ACTIVE until the class end date has passed, ARCHIVED afterwards."""
    today = today or datetime.now(timezone.utc).date()
    return "ACTIVE" if end_date >= today else "ARCHIVED"


def format_time(hhmm: str) -> str:
    hours, minutes = hhmm.split(":")
    hour = int(hours)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


def format_date(d: date) -> str:
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def _present(cls: dict[str, Any], student_count: int) -> dict[str, Any]:
    return {
        **cls,
        "schedule": f"{format_time(cls['start_time'])} - {format_time(cls['end_time'])}",
        "dates": f"{format_date(cls['start_date'])} - {format_date(cls['end_date'])}",
        "status": compute_status(cls["end_date"]),
        "student_count": student_count,
    }


def _check_unique_unis(roster: Iterable[dict[str, str]], existing: Iterable[str] = ()) -> None:
    seen = set(existing)
    for s in roster:
        if s["uni"] in seen:
            raise DuplicateUni(f"Duplicate UNI: {s['uni']}")
        seen.add(s["uni"])


class ClassService:
    """Business logic for classes and their rosters."""

    def __init__(
        self,
        class_repo: ClassRepository,
        student_repo: StudentRepository,
        cold_call_repo: ColdCallRepository,
    ) -> None:
        self._classes = class_repo
        self._students = student_repo
        self._cold_calls = cold_call_repo

    def _require_class(self, ctx: AuthContext, class_id: str) -> dict[str, Any]:
        cls = self._classes.get_class(class_id, ctx.owner_filter)
        if cls is None:
            raise NotFound("Class not found")
        return cls

    # ── Classes ──

    def create_class(self, ctx: AuthContext, fields: dict[str, Any],
                     roster: list[dict[str, str]]) -> dict[str, Any]:
        """Create a class with zero or more initial students. Raises ValueError on duplicates."""
        _check_unique_unis(roster)
        cls = self._classes.create_class(ctx.user_id, fields, roster)

        CLASSES_CREATED.inc()
        if roster:
            STUDENTS_ADDED.labels(source="create").inc(len(roster))
        logger.info("Class created: id=%s, name=%s, students=%d", cls["id"], cls["name"], len(roster))
        return self.get_class(ctx, cls["id"])

    def list_classes(self, ctx: AuthContext, status: Optional[str] = None) -> list[dict[str, Any]]:
        items = [_present(c, c.pop("student_count")) for c in self._classes.list_classes(ctx.owner_filter)]
        if status:
            items = [c for c in items if c["status"] == status]
        return items

    def get_class(self, ctx: AuthContext, class_id: str) -> dict[str, Any]:
        """Class detail with its students ordered by name."""
        cls = self._require_class(ctx, class_id)
        roster = self._students.list_students(class_id)
        detail = _present(cls, len(roster))
        detail["students"] = [{"id": s["id"], "name": s["name"], "uni": s["uni"]} for s in roster]
        return detail

    def update_class(self, ctx: AuthContext, class_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        current = self._require_class(ctx, class_id)
        start = changes.get("start_date") or current["start_date"]
        end = changes.get("end_date") or current["end_date"]
        if end < start:
            raise ValueError("end_date must not be before start_date")

        updated = self._classes.update_class(class_id, ctx.owner_filter, changes)
        if updated is None:
            raise NotFound("Class not found")
        if changes:
            logger.info("Class updated: id=%s, fields=%s", class_id, sorted(changes))
        return self.get_class(ctx, class_id)

    def delete_class(self, ctx: AuthContext, class_id: str) -> dict[str, str]:
        if not self._classes.delete_class(class_id, ctx.owner_filter):
            raise NotFound("Class not found")
        logger.info("Class deleted: id=%s", class_id)
        return {"status": "deleted", "id": class_id}

    # ── Roster ──

    def add_students(self, ctx: AuthContext, class_id: str, roster: list[dict[str, str]],
                     source: str = "manual") -> list[dict[str, Any]]:
        self._require_class(ctx, class_id)
        if not roster:
            raise ValueError("At least one student is required")
        _check_unique_unis(roster, self._students.existing_unis(class_id))

        added = self._students.add_students(class_id, roster)
        STUDENTS_ADDED.labels(source=source).inc(len(added))
        logger.info("Students added: class=%s, count=%d, source=%s", class_id, len(added), source)
        return [{"id": s["id"], "name": s["name"], "uni": s["uni"]} for s in added]

    def import_students_csv(self, ctx: AuthContext, class_id: str, raw: bytes) -> list[dict[str, Any]]:
        self._require_class(ctx, class_id)
        roster = roster_csv.parse_roster_csv(raw, settings.CSV_MAX_BYTES)
        return self.add_students(ctx, class_id, roster, source="csv")

    def update_student(self, ctx: AuthContext, class_id: str, student_id: str,
                       changes: dict[str, Any]) -> dict[str, Any]:
        self._require_class(ctx, class_id)
        current = self._students.get_student(class_id, student_id)
        if current is None:
            raise NotFound("Student not found")
        new_uni = changes.get("uni")
        if new_uni and new_uni != current["uni"] and new_uni in self._students.existing_unis(class_id):
            raise DuplicateUni(f"Duplicate UNI: {new_uni}")

        updated = self._students.update_student(class_id, student_id, changes)
        if updated is None:
            raise NotFound("Student not found")
        return {"id": updated["id"], "name": updated["name"], "uni": updated["uni"]}

    def remove_student(self, ctx: AuthContext, class_id: str, student_id: str) -> dict[str, Any]:
        """Irreversible: the student's cold calls go with them."""
        self._require_class(ctx, class_id)
        removed_calls = self._students.delete_student(class_id, student_id)
        if removed_calls is None:
            raise NotFound("Student not found")

        STUDENTS_REMOVED.inc()
        logger.info(
            "Student removed: class=%s, student=%s, cold_calls_removed=%d",
            class_id, student_id, removed_calls,
        )
        return {"status": "deleted", "id": student_id, "cold_calls_removed": removed_calls}

    def export_roster_csv(self, ctx: AuthContext, class_id: str) -> tuple[str, str]:
        """Return (class name, CSV text)."""
        cls = self._require_class(ctx, class_id)
        return cls["name"], roster_csv.render_roster_csv(self._students.list_students(class_id))

    # ── History ──

    def list_cold_calls(self, ctx: AuthContext, class_id: str,
                        limit: Optional[int] = None) -> list[dict[str, Any]]:
        """Most recent first."""
        self._require_class(ctx, class_id)
        effective = min(limit or settings.DEFAULT_HISTORY_LIMIT, settings.MAX_HISTORY_LIMIT)
        return self._cold_calls.list_for_class(class_id, effective)
