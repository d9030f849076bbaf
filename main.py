# type: ignore
# pyright: reportGeneralTypeIssues=false
# pyright: reportOptionalMemberAccess=false
"""
Cold Call Service
=================
Classroom participation tracker: teachers keep class rosters, pick a
student uniformly at random for each cold call, score the answer on a
-2..+2 scale, and review per-student participation statistics.

    roster ─► select (cold call recorded) ─► score / clear ─► stats

Port: 8000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coldcall.controllers import (
    auth_controller,
    class_controller,
    cold_call_controller,
    stats_controller,
    system_controller,
)
from coldcall.core.config import settings
from coldcall.core.database import engine, init_schema
from coldcall.core.dependencies import get_auth_service
from coldcall.core.errors import ColdCallError
from coldcall.core.logging import get_logger
from coldcall.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    init_schema(engine)
    get_auth_service().purge_expired_tokens()
    logger.info("%s v%s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    yield
    engine.dispose()
    logger.info("Shutting down")


app = FastAPI(
    title="Cold Call Service",
    version=settings.SERVICE_VERSION,
    description="Random cold-call selection, participation scoring and class statistics",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


# ── Error handlers ────────────────────────────────────────────────────────
@app.exception_handler(ColdCallError)
async def coldcall_error_handler(request: Request, exc: ColdCallError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(status_code=500, content={"error": "internal_server_error", "detail": str(exc)})


# ── Routers ───────────────────────────────────────────────────────────────
app.include_router(system_controller.router)
app.include_router(auth_controller.router)
app.include_router(class_controller.router)
app.include_router(cold_call_controller.router)
app.include_router(stats_controller.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
