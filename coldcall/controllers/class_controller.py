# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Class & roster endpoints.
Thin HTTP layer that delegates ALL logic to ClassService.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.responses import Response

from coldcall.core.config import settings
from coldcall.core.dependencies import get_class_service, get_current_context
from coldcall.core.errors import DuplicateUni
from coldcall.core.security import AuthContext
from coldcall.schemas import (
    VALID_STATUSES,
    ClassCreate,
    ClassDetail,
    ClassOut,
    ClassUpdate,
    ImportResult,
    StudentOut,
    StudentsAdd,
    StudentUpdate,
)
from coldcall.services.class_service import ClassService

router = APIRouter(prefix="/api/v1", tags=["Classes"])


def csv_response(content: str, filename: str) -> Response:
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in filename) or "export"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{safe}.csv"'},
    )


async def read_upload(request: Request, max_bytes: int) -> bytes:
    """Read the request body, refusing it once it grows past ``max_bytes``."""
    too_large = HTTPException(
        status_code=413, detail=f"File size must be less than {max_bytes // (1024 * 1024)}MB"
    )
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise too_large
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise too_large
    return bytes(body)


# ── Classes ──

@router.get("/classes", response_model=List[ClassOut])
def list_classes(
    status: Optional[str] = Query(default=None, description="ACTIVE|ARCHIVED"),
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    if status is not None:
        status = status.upper()
        if status not in VALID_STATUSES:
            raise HTTPException(status_code=422, detail=f"status must be one of {VALID_STATUSES}")
    return service.list_classes(ctx, status)


@router.post("/classes", status_code=201, response_model=ClassDetail)
def create_class(
    body: ClassCreate,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    fields = body.model_dump(exclude={"students"})
    try:
        return service.create_class(ctx, fields, [s.model_dump() for s in body.students])
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/classes/{class_id}", response_model=ClassDetail)
def get_class(
    class_id: str,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    return service.get_class(ctx, class_id)


@router.patch("/classes/{class_id}", response_model=ClassDetail)
def update_class(
    class_id: str,
    body: ClassUpdate,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    try:
        return service.update_class(ctx, class_id, body.model_dump(exclude_unset=True, exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/classes/{class_id}")
def delete_class(
    class_id: str,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    return service.delete_class(ctx, class_id)


# ── Roster ──

@router.post("/classes/{class_id}/students", status_code=201, response_model=ImportResult)
def add_students(
    class_id: str,
    body: StudentsAdd,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    try:
        added = service.add_students(ctx, class_id, [s.model_dump() for s in body.students])
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ImportResult(added=len(added), students=added)


@router.post("/classes/{class_id}/students/import", status_code=201, response_model=ImportResult)
async def import_students(
    class_id: str,
    request: Request,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    """Body is the raw CSV file (``Content-Type: text/csv``) with name and uni columns."""
    raw = await read_upload(request, settings.CSV_MAX_BYTES)
    try:
        added = service.import_students_csv(ctx, class_id, raw)
    except DuplicateUni as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ImportResult(added=len(added), students=added)


@router.get("/classes/{class_id}/students/export")
def export_students(
    class_id: str,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    name, content = service.export_roster_csv(ctx, class_id)
    return csv_response(content, f"{name}-roster")


@router.patch("/classes/{class_id}/students/{student_id}", response_model=StudentOut)
def update_student(
    class_id: str,
    student_id: str,
    body: StudentUpdate,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    try:
        return service.update_student(ctx, class_id, student_id, body.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/classes/{class_id}/students/{student_id}")
def remove_student(
    class_id: str,
    student_id: str,
    ctx: AuthContext = Depends(get_current_context),
    service: ClassService = Depends(get_class_service),
):
    return service.remove_student(ctx, class_id, student_id)
