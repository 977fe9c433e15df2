"""
backend/oddscron/routers/triggers.py

Purpose:
    Manual trigger endpoints for the settlement call and the odds fetch.
    Both run synchronously and reflect the job result as the response body.

Dependencies:
    - oddscron.services.settlement_service
    - oddscron.services.odds_cache_service
"""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import JSONResponse

from oddscron.config import Settings, settings
from oddscron.middleware.logging import record_job_outcome
from oddscron.services.odds_cache_service import fetch_and_cache_odds
from oddscron.services.settlement_service import post_settle

router = APIRouter(tags=["triggers"])
logger = logging.getLogger("oddscron.triggers")


def _settings_for(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or settings


def _secret_matches(provided: str | None, expected: str) -> bool:
    if provided is None:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@router.get("/trigger")
async def trigger_settlement(request: Request, gameId: str | None = Query(default=None)):
    result = await post_settle(gameId or None, _settings_for(request))
    record_job_outcome(request, "settlement", ok=result.ok, upstream_status=result.status)
    return JSONResponse(status_code=200 if result.ok else 500, content=result.to_response())


@router.get("/trigger-odds-fetch")
async def trigger_odds_fetch(
    request: Request,
    secret: str | None = Query(default=None),
    x_odds_fetch_secret: str | None = Header(default=None),
):
    cfg = _settings_for(request)
    if cfg.ODDS_FETCH_SECRET:
        provided = secret or x_odds_fetch_secret
        if not _secret_matches(provided, cfg.ODDS_FETCH_SECRET):
            record_job_outcome(request, "odds_fetch", ok=False, unauthorized=True)
            return JSONResponse(status_code=401, content={"ok": False, "error": "unauthorized"})

    logger.info("Manual odds fetch triggered")
    result = await fetch_and_cache_odds(cfg)
    record_job_outcome(
        request, "odds_fetch", ok=result.ok, count=result.count, errors=result.errors,
        already_running=result.already_running,
    )
    if result.ok:
        status_code = 200
    elif result.already_running:
        status_code = 409
    else:
        status_code = 500
    return JSONResponse(status_code=status_code, content=result.to_response())
