"""
backend/oddscron/services/settlement_service.py

Purpose:
    Fire one settlement request at the site's settle endpoint, authenticated
    with a shared-secret header. The response is passed back verbatim;
    interpreting it is the receiving endpoint's job.

Dependencies:
    - httpx
    - oddscron.providers.http_client
"""

from __future__ import annotations

import json
import logging

import httpx

from oddscron.config import Settings, settings
from oddscron.models.odds_cache import SettleResult
from oddscron.providers.http_client import ProviderClient

logger = logging.getLogger("oddscron.settlement")

SECRET_HEADER = "x-settle-secret"


def settle_url(cfg: Settings) -> str:
    return f"{cfg.SITE_URL.rstrip('/')}{cfg.SETTLE_PATH}"


async def post_settle(
    game_id: str | int | None = None,
    cfg: Settings | None = None,
    *,
    client: ProviderClient | None = None,
) -> SettleResult:
    """POST {"gameId": ...} (or {}) to the settle endpoint. Never raises."""
    cfg = cfg or settings
    if not cfg.settlement_configured:
        return SettleResult(ok=False, error="Missing SITE_URL or SETTLE_SHARED_SECRET")

    body = {"gameId": str(game_id)} if game_id else {}
    owns_client = client is None
    client = client or ProviderClient("settlement", timeout=cfg.ODDS_REQUEST_TIMEOUT_SECONDS)
    try:
        resp = await client.post(
            settle_url(cfg),
            content=json.dumps(body, separators=(",", ":")),
            headers={
                "Content-Type": "application/json",
                SECRET_HEADER: cfg.SETTLE_SHARED_SECRET,
            },
        )
        return SettleResult(ok=resp.is_success, status=resp.status_code, body=resp.text)
    except httpx.HTTPError as exc:
        logger.error("Settlement request failed: %s", exc)
        return SettleResult(ok=False, error=str(exc) or exc.__class__.__name__)
    except Exception as exc:
        # Bad SITE_URL or a secret httpx cannot encode as a header value.
        logger.exception("Settlement request could not be sent")
        return SettleResult(ok=False, error=str(exc) or exc.__class__.__name__)
    finally:
        if owns_client:
            await client.aclose()
