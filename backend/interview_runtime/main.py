import asyncio
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from interview_runtime.api.candidate import router as candidate_router
from interview_runtime.api.chat import router as chat_router
from interview_runtime.api.media import router as media_router
from interview_runtime.api.reports import router as reports_router
from interview_runtime.db.database import init_db
from interview_runtime.session.registry import session_registry
from interview_runtime.system_metrics import get_metrics_snapshot, set_metric
from runtime_core.config import QA_MODE, SESSION_CLEANUP_TTL_SEC

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

app = FastAPI(title="Interview Runtime")
logger = logging.getLogger("interview_runtime.main")

SESSION_CLEANUP_INTERVAL_SEC = max(30, int(os.getenv("SESSION_CLEANUP_INTERVAL_SEC", "120")))
_session_cleanup_task: asyncio.Task | None = None


def _get_allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    return [item.strip() for item in raw.split(",") if item.strip()]


_allowed_origins = _get_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.on_event("startup")
async def startup():
    global _session_cleanup_task
    await init_db()
    if QA_MODE:
        logger.info("[SYSTEM] QA_MODE ENABLED")
    logger.info("[SYSTEM] CORS allow_origins=%s", _allowed_origins)

    async def _session_cleanup_loop():
        while True:
            await asyncio.sleep(SESSION_CLEANUP_INTERVAL_SEC)
            removed = session_registry.cleanup_inactive(SESSION_CLEANUP_TTL_SEC)
            if removed > 0:
                logger.info("[SYSTEM] cleaned inactive sessions=%s", removed)

    _session_cleanup_task = asyncio.create_task(_session_cleanup_loop())


@app.on_event("shutdown")
async def shutdown():
    global _session_cleanup_task
    if _session_cleanup_task is not None:
        _session_cleanup_task.cancel()
        try:
            await _session_cleanup_task
        except asyncio.CancelledError:
            pass
        finally:
            _session_cleanup_task = None
    logger.info("[SYSTEM] shutdown complete")


@app.get("/healthz")
async def healthz():
    return {"status": "ok", "service": "interview-runtime"}


@app.get("/api/metrics")
def metrics():
    set_metric("sessions_registered_active", float(session_registry.active_count()))
    return get_metrics_snapshot()


app.include_router(candidate_router)
app.include_router(chat_router)
app.include_router(media_router)
app.include_router(reports_router)
