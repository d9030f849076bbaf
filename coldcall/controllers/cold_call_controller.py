# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Cold-call selection, history and scoring.
Pure HTTP layer, no business logic.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from coldcall.core.config import settings
from coldcall.core.dependencies import (
    get_class_service,
    get_current_context,
    get_score_service,
    get_selection_service,
)
from coldcall.core.security import AuthContext
from coldcall.schemas import (
    BatchScoreOut,
    BatchScoreRequest,
    ColdCallOut,
    ErrorResponse,
    ScoreOut,
    ScoreUpdate,
    SelectionOut,
)
from coldcall.services.class_service import ClassService
from coldcall.services.score_service import ScoreService
from coldcall.services.selection_service import SelectionService

router = APIRouter(prefix="/api/v1", tags=["Cold Calls"])

NOT_FOUND = {404: {"model": ErrorResponse}}


@router.post("/classes/{class_id}/cold-calls", status_code=201, response_model=SelectionOut,
             responses={**NOT_FOUND, 409: {"model": ErrorResponse}})
def select_random_member(
    class_id: str,
    ctx: AuthContext = Depends(get_current_context),
    service: SelectionService = Depends(get_selection_service),
):
    """Pick a student at random and record the cold call."""
    return service.select_random_member(ctx, class_id)


@router.get("/classes/{class_id}/cold-calls", response_model=List[ColdCallOut], responses=NOT_FOUND)
def list_cold_calls(
    class_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=settings.MAX_HISTORY_LIMIT),
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    return service.list_cold_calls(ctx, class_id, limit)


@router.put("/cold-calls/{cold_call_id}/score", response_model=ScoreOut,
            responses={**NOT_FOUND, 422: {"model": ErrorResponse}})
def set_score(
    cold_call_id: str,
    body: ScoreUpdate,
    ctx: AuthContext = Depends(get_current_context),
    service: ScoreService = Depends(get_score_service),
):
    """Set, overwrite, or clear (``null``) the score of one cold call."""
    return service.set_score(ctx, cold_call_id, body.score)


@router.post("/cold-calls/scores", response_model=BatchScoreOut)
def set_scores(
    body: BatchScoreRequest,
    ctx: AuthContext = Depends(get_current_context),
    service: ScoreService = Depends(get_score_service),
):
    results = service.set_scores(ctx, [(u.cold_call_id, u.score) for u in body.updates])
    return BatchScoreOut(results=results)
