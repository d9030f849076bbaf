# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Random cold-call selection.
Picks one student uniformly from the current roster and records the call.
"""

import random
from typing import Any, Optional

from coldcall.core.errors import EmptyRoster, NotFound
from coldcall.core.logging import get_logger
from coldcall.core.security import AuthContext
from coldcall.metrics import SELECTIONS_TOTAL
from coldcall.repositories.class_repository import ClassRepository
from coldcall.repositories.cold_call_repository import ColdCallRepository
from coldcall.repositories.student_repository import StudentRepository

logger = get_logger(__name__)


class SelectionService:
    """Uniform random selection with no weighting and no repeat avoidance."""

    def __init__(
        self,
        class_repo: ClassRepository,
        student_repo: StudentRepository,
        cold_call_repo: ColdCallRepository,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._classes = class_repo
        self._students = student_repo
        self._cold_calls = cold_call_repo
        self._rng = rng or random.Random()

    def select_random_member(self, ctx: AuthContext, class_id: str) -> dict[str, Any]:
        """
        Draw one student and persist a new cold call for them.
        Raises NotFound (unknown / foreign class) or EmptyRoster; in both cases
        nothing is written.
        """
        if self._classes.get_class(class_id, ctx.owner_filter) is None:
            SELECTIONS_TOTAL.labels(outcome="not_found").inc()
            raise NotFound("Class not found")

        roster = self._students.list_students(class_id)
        if not roster:
            SELECTIONS_TOTAL.labels(outcome="empty_roster").inc()
            raise EmptyRoster()

        chosen = roster[self._rng.randrange(len(roster))]
        call = self._cold_calls.create(class_id, chosen["id"])

        SELECTIONS_TOTAL.labels(outcome="selected").inc()
        logger.info(
            "Cold call recorded: class=%s, student=%s, roster_size=%d, cold_call=%s",
            class_id, chosen["id"], len(roster), call["id"],
        )
        return {
            "id": chosen["id"],
            "name": chosen["name"],
            "uni": chosen["uni"],
            "cold_call_id": call["id"],
            "called_at": call["called_at"],
        }
