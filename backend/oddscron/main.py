"""
backend/oddscron/main.py

Purpose:
    FastAPI application bootstrap: logging, document-store startup, the
    scheduler lifecycle for the settlement and odds-fetch jobs, and the
    health/trigger endpoints.

Dependencies:
    - oddscron.database
    - oddscron.workers
    - oddscron.routers.triggers
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from oddscron.config import Settings, settings
from oddscron.database import close_db, connect_db
from oddscron.middleware.logging import StructuredLoggingMiddleware, setup_logging
from oddscron.utils import iso_utc
from oddscron.workers.odds_fetch_cron import run_daily_odds_fetch
from oddscron.workers.settlement_cron import run_settlement_tick

logger = logging.getLogger("oddscron")


def _build_job_specs(cfg: Settings) -> list[dict]:
    return [
        {
            "id": "settlement",
            "func": run_settlement_tick,
            "trigger": "cron",
            "trigger_kwargs": {"minute": f"*/{cfg.SETTLE_CRON_MINUTES}", "timezone": "UTC"},
        },
        {
            "id": "odds_fetch",
            "func": run_daily_odds_fetch,
            "trigger": "cron",
            "trigger_kwargs": {"hour": 0, "minute": 0, "timezone": "UTC"},
        },
    ]


def register_jobs(scheduler: AsyncIOScheduler, cfg: Settings) -> int:
    added = 0
    for spec in _build_job_specs(cfg):
        if scheduler.get_job(spec["id"]):
            continue
        scheduler.add_job(
            spec["func"],
            spec["trigger"],
            id=spec["id"],
            kwargs={"cfg": cfg},
            replace_existing=True,
            # The run guard refuses overlaps; don't queue them up here either.
            max_instances=1,
            coalesce=True,
            **spec["trigger_kwargs"],
        )
        added += 1
    return added


def _warn_missing_config(cfg: Settings) -> None:
    if not cfg.SITE_URL:
        logger.warning("SITE_URL is not set; scheduled settlement will no-op.")
    if not cfg.SETTLE_SHARED_SECRET:
        logger.warning("SETTLE_SHARED_SECRET is not set; scheduled settlement will no-op.")
    if not cfg.ODDS_API_KEY:
        logger.warning("ODDS_API_KEY is not set; odds fetching disabled.")


def create_app(cfg: Settings | None = None) -> FastAPI:
    cfg = cfg or settings
    scheduler = AsyncIOScheduler(timezone="UTC")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        _warn_missing_config(cfg)
        await connect_db(cfg)

        if cfg.SCHEDULER_ENABLED:
            added = register_jobs(scheduler, cfg)
            scheduler.start()
            logger.info("Settlement cron: every %d minutes", cfg.SETTLE_CRON_MINUTES)
            logger.info("Odds fetch cron: daily at 00:00 UTC")
            logger.info("Background scheduler started with %d jobs", added)
        else:
            logger.info("Scheduler disabled via config")

        yield

        if scheduler.running:
            scheduler.shutdown(wait=False)
        await close_db()

    app = FastAPI(
        title="oddscron",
        description="Scheduled settlement and odds cache runner",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.scheduler = scheduler

    # Structured logging
    app.add_middleware(StructuredLoggingMiddleware)

    from oddscron.routers.triggers import router as triggers_router

    app.include_router(triggers_router)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Catch-all: log the real error, answer in the job-result shape."""
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc) or "internal error"})

    @app.get("/health")
    async def health():
        return {"ok": True, "time": iso_utc()}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
