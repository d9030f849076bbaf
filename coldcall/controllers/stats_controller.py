# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: Per-class participation statistics."""
from fastapi import APIRouter, Depends

from coldcall.controllers.class_controller import csv_response
from coldcall.core.dependencies import get_current_context, get_score_service
from coldcall.core.security import AuthContext
from coldcall.schemas import ClassStatsOut
from coldcall.services.score_service import ScoreService

router = APIRouter(prefix="/api/v1", tags=["Stats"])


@router.get("/classes/{class_id}/stats", response_model=ClassStatsOut)
def class_stats(
    class_id: str,
    ctx: AuthContext = Depends(get_current_context),
    service: ScoreService = Depends(get_score_service),
):
    return service.compute_stats(ctx, class_id)


@router.get("/classes/{class_id}/stats/export")
def export_stats(
    class_id: str,
    ctx: AuthContext = Depends(get_current_context),
    service: ScoreService = Depends(get_score_service),
):
    name, content = service.export_stats_csv(ctx, class_id)
    return csv_response(content, f"{name}-stats")
