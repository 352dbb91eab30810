"""
FastAPI app entrypoint.

Channel manager: webhook ingress, integration management and manual sync. The scheduled
sync loop, error recovery and PMS forwarding run on a background scheduler.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from app.api.routes import channels, integrations, sync, webhooks
from app.config import settings
from app.core.constants import CHANNEL_SYNC_JOB_ID, CHANNEL_SYNC_RECOVERY_JOB_ID, PMS_FORWARD_JOB_ID
from app.scheduler.channel_sync_job import run_scheduled_sync, run_sync_recovery
from app.scheduler.pms_forward_job import run_pms_forward_job

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _scheduler.add_job(
        run_scheduled_sync,
        "interval",
        minutes=settings.sync_poll_interval_minutes,
        id=CHANNEL_SYNC_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.add_job(
        run_sync_recovery,
        "interval",
        minutes=settings.sync_recovery_interval_minutes,
        id=CHANNEL_SYNC_RECOVERY_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    if settings.pms_reservation_forward:
        _scheduler.add_job(
            run_pms_forward_job,
            "interval",
            seconds=settings.pms_forward_interval_seconds,
            id=PMS_FORWARD_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
    _scheduler.start()
    app.state.scheduler = _scheduler
    logger.info(
        "Channel sync every %s min (staleness %s min, %s workers); PMS forwarding %s",
        settings.sync_poll_interval_minutes,
        settings.sync_staleness_minutes,
        settings.sync_max_workers,
        "on" if settings.pms_reservation_forward else "off",
    )
    yield
    _scheduler.shutdown(wait=False)


app = FastAPI(title="Channel Sync", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS (comma-separated) for the production frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(integrations.router, tags=["integrations"])
app.include_router(sync.router, tags=["sync"])
app.include_router(webhooks.router, tags=["webhooks"])
app.include_router(channels.router, tags=["channels"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Channel Sync API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
