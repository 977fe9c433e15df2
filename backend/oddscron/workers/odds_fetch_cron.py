"""Daily odds fetch: refresh the odds cache for every upcoming event."""

import logging

from oddscron.config import Settings, settings
from oddscron.services.odds_cache_service import JOB_ID, fetch_and_cache_odds
from oddscron.utils import iso_utc
from oddscron.workers._state import record_run

logger = logging.getLogger("oddscron.workers.odds_fetch")


async def run_daily_odds_fetch(cfg: Settings | None = None) -> None:
    cfg = cfg or settings
    ts = iso_utc()
    logger.info("[%s] Starting daily odds fetch cron job", ts)
    try:
        result = await fetch_and_cache_odds(cfg)
        logger.info(
            "[%s] Daily odds fetch complete -> ok=%s count=%d errors=%d",
            ts, result.ok, result.count or 0, result.errors or 0,
        )
        if result.error:
            logger.warning("[%s] Daily odds fetch error: %s", ts, result.error)
        if not result.already_running:
            await record_run(
                JOB_ID,
                ok=result.ok,
                metrics={"count": result.count or 0, "errors": result.errors or 0},
            )
    except Exception:
        logger.exception("[cron][odds-fetch] error")
