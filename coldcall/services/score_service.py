# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Score ledger. Per-call scores and per-student aggregates.

A cold call holds at most one current score. Writes overwrite in place
(last write wins); clearing sets it back to NULL. Aggregates are computed
on demand from committed rows and never cached.
"""

import numbers
from typing import Any, Iterable, Optional

from coldcall.core.errors import ColdCallError, InvalidScore, NotFound
from coldcall.core.logging import get_logger
from coldcall.core.security import AuthContext
from coldcall.metrics import SCORES_SET
from coldcall.models.tables import SCORE_MAX, SCORE_MIN
from coldcall.repositories.base import iso
from coldcall.repositories.class_repository import ClassRepository
from coldcall.repositories.cold_call_repository import ColdCallRepository
from coldcall.services import roster_csv

logger = get_logger(__name__)


def validate_score(value: Any) -> Optional[int]:
    """Return the score as stored (int or None) or raise InvalidScore."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidScore()
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidScore()
        value = int(value)
    if not isinstance(value, numbers.Integral):
        raise InvalidScore()
    value = int(value)
    if value < SCORE_MIN or value > SCORE_MAX:
        raise InvalidScore()
    return value


class ScoreService:
    """Score writes and statistics for one class at a time."""

    def __init__(self, class_repo: ClassRepository, cold_call_repo: ColdCallRepository) -> None:
        self._classes = class_repo
        self._cold_calls = cold_call_repo

    # ── Commands ──

    def set_score(self, ctx: AuthContext, cold_call_id: str, score: Any) -> dict[str, Any]:
        """Overwrite or clear the score. Validation happens before any lookup."""
        value = validate_score(score)

        call = self._cold_calls.get_visible(cold_call_id, ctx.owner_filter)
        if call is None:
            raise NotFound("Cold call not found")

        self._cold_calls.update_score(cold_call_id, value)
        action = "cleared" if value is None else "set"
        SCORES_SET.labels(action=action).inc()
        logger.info("Score %s: cold_call=%s, score=%s", action, cold_call_id, value)
        return {"ok": True, "id": cold_call_id, "score": value}

    def set_scores(self, ctx: AuthContext, updates: Iterable[tuple[str, Any]]) -> list[dict[str, Any]]:
        """Apply a batch of score edits independently; one failure does not stop the rest."""
        results: list[dict[str, Any]] = []
        for cold_call_id, score in updates:
            try:
                out = self.set_score(ctx, cold_call_id, score)
                results.append({"cold_call_id": cold_call_id, "ok": True, "score": out["score"]})
            except ColdCallError as exc:
                results.append({"cold_call_id": cold_call_id, "ok": False, "error": exc.code})
        return results

    # ── Queries ──

    def compute_stats(self, ctx: AuthContext, class_id: str) -> dict[str, Any]:
        """
        Per-student times called, cumulative score, average over scored calls
        only (None when nothing is scored), and last call time. Sorted by
        cumulative score, highest first; ties fall back to name.
        """
        cls = self._classes.get_class(class_id, ctx.owner_filter)
        if cls is None:
            raise NotFound("Class not found")

        rows = self._cold_calls.aggregate_by_student(class_id)
        stats = []
        for r in rows:
            scored = r["scored_count"]
            stats.append({
                "id": r["id"],
                "name": r["name"],
                "uni": r["uni"],
                "times_called": r["times_called"],
                "cumulative_score": r["cumulative_score"],
                "average_score": (r["cumulative_score"] / scored) if scored else None,
                "last_called_at": iso(r["last_called_at"]),
            })
        stats.sort(key=lambda s: (-s["cumulative_score"], s["name"]))
        return {
            "class_id": class_id,
            "class_name": cls["name"],
            "total_calls": sum(s["times_called"] for s in stats),
            "students": stats,
        }

    def export_stats_csv(self, ctx: AuthContext, class_id: str) -> tuple[str, str]:
        """Return (class name, CSV text) of ``compute_stats``."""
        stats = self.compute_stats(ctx, class_id)
        return stats["class_name"], roster_csv.render_stats_csv(stats["students"])
