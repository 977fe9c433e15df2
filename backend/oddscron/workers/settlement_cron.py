"""Settlement tick: nudge the site's settle endpoint every few minutes."""

import asyncio
import logging
import random

from oddscron.config import Settings, settings
from oddscron.services.run_guard import JobAlreadyRunningError, RunGuard, run_guard
from oddscron.services.settlement_service import post_settle
from oddscron.utils import iso_utc
from oddscron.workers._state import record_run

logger = logging.getLogger("oddscron.workers.settlement")

JOB_ID = "settlement"


async def run_settlement_tick(cfg: Settings | None = None, *, guard: RunGuard | None = None) -> None:
    """Wait a random jitter, then post one settlement request without a game id.

    The jitter keeps several instances from hitting the endpoint in lockstep.
    """
    cfg = cfg or settings
    guard = guard or run_guard
    ts = iso_utc()
    try:
        async with guard.hold(JOB_ID):
            await asyncio.sleep(random.uniform(0, max(0.0, cfg.SETTLE_JITTER_MAX_SECONDS)))
            result = await post_settle(cfg=cfg)
            logger.info("[%s] settlement cron -> status=%s ok=%s", ts, result.status, result.ok)
            if result.error:
                logger.warning("[%s] settlement cron error: %s", ts, result.error)
            await record_run(JOB_ID, ok=result.ok, metrics={"status": result.status})
    except JobAlreadyRunningError:
        logger.warning("[%s] settlement cron skipped: previous tick still running", ts)
    except Exception:
        logger.exception("[cron][settlement] error")
