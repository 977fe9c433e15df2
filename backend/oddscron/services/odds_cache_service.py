"""
backend/oddscron/services/odds_cache_service.py

Purpose:
    Odds-fetch pipeline: pull the event list for one sport from The Odds API,
    fetch per-event odds for the fixed market taxonomy, reshape them into one
    cache document per event, and merge-upsert those documents.

    One event failing never aborts the batch; it is recorded and the loop
    moves on. Anything failing outside the per-event loop aborts the run.
    The public entry point never raises.

Dependencies:
    - oddscron.providers.odds_api
    - oddscron.services.provider_rate_limiter
    - oddscron.services.run_guard
    - oddscron.database
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any

import oddscron.database as _db
from oddscron.config import Settings, settings
from oddscron.models.odds_cache import (
    MARKET_KEYS,
    EventError,
    EventSuccess,
    MarketEntry,
    OddsCacheDocument,
    OddsFetchResult,
    empty_markets,
)
from oddscron.providers.base import BaseOddsProvider
from oddscron.providers.odds_api import TheOddsAPIProvider
from oddscron.services.provider_rate_limiter import EventThrottle
from oddscron.services.run_guard import JobAlreadyRunningError, RunGuard, run_guard
from oddscron.utils import epoch_millis

logger = logging.getLogger("oddscron.odds_cache")

JOB_ID = "odds_fetch"


def cache_document_id(sport_prefix: str, event_id: str) -> str:
    return f"{sport_prefix}_{event_id}"


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_odds(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    return price if math.isfinite(price) else 0.0


def _as_point(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def build_market_entries(bookmakers: Any) -> dict[str, list[MarketEntry]]:
    """Group every bookmaker outcome under its market key.

    Markets outside MARKET_KEYS are dropped. The result always carries every
    taxonomy key, in bookmaker/market/outcome order within each list.
    """
    markets = empty_markets()
    for bookmaker in _as_list(bookmakers):
        if not isinstance(bookmaker, dict):
            continue
        bookmaker_key = str(bookmaker.get("key") or bookmaker.get("title") or "unknown")
        for market in _as_list(bookmaker.get("markets")):
            if not isinstance(market, dict):
                continue
            market_key = str(market.get("key") or "")
            bucket = markets.get(market_key)
            if bucket is None:
                continue
            last_update = str(market.get("last_update") or "")
            for outcome in _as_list(market.get("outcomes")):
                if not isinstance(outcome, dict):
                    continue
                bucket.append(
                    MarketEntry(
                        bookmaker=bookmaker_key,
                        selection=str(outcome.get("name") or ""),
                        description=str(outcome.get("description") or ""),
                        odds=_as_odds(outcome.get("price")),
                        point=_as_point(outcome.get("point")),
                        last_updated=last_update,
                    )
                )
    return markets


def build_cache_document(
    event: dict[str, Any],
    event_id: str,
    markets: dict[str, list[MarketEntry]],
    *,
    default_game_id: str,
    fetched_at_ms: int | None = None,
) -> OddsCacheDocument:
    complete = empty_markets()
    for key in MARKET_KEYS:
        complete[key] = list(markets.get(key, []))
    return OddsCacheDocument(
        event_id=event_id,
        game_id=str(event.get("sport_key") or default_game_id),
        home_team=str(event.get("home_team") or ""),
        away_team=str(event.get("away_team") or ""),
        commence_time=str(event.get("commence_time") or ""),
        last_fetched=fetched_at_ms if fetched_at_ms is not None else epoch_millis(),
        markets=complete,
    )


class OddsCacheRepository:
    """Merge-upserts cache documents into one collection."""

    def __init__(self, collection) -> None:
        self._collection = collection

    @staticmethod
    def _merge_update(document: dict[str, Any]) -> dict[str, Any]:
        # Dotted market paths: market keys this write does not know about survive.
        fields = {key: value for key, value in document.items() if key != "markets"}
        for market_key, entries in (document.get("markets") or {}).items():
            fields[f"markets.{market_key}"] = entries
        return {"$set": fields}

    async def upsert(self, doc_id: str, document: OddsCacheDocument) -> None:
        await self._collection.update_one(
            {"_id": doc_id},
            self._merge_update(document.to_document()),
            upsert=True,
        )


def _duration_since(started: float) -> str:
    return f"{time.monotonic() - started:.2f}"


class OddsFetchPipeline:
    def __init__(
        self,
        cfg: Settings,
        provider: BaseOddsProvider,
        repository: OddsCacheRepository,
        throttle: EventThrottle | None = None,
    ) -> None:
        self._settings = cfg
        self._provider = provider
        self._repository = repository
        self._throttle = throttle or EventThrottle(cfg.ODDS_EVENT_DELAY_SECONDS)

    async def _process_event(self, event: dict[str, Any], event_id: str) -> None:
        sport_key = self._settings.ODDS_SPORT_KEY
        odds = await self._provider.get_event_odds(sport_key, event_id, list(MARKET_KEYS))
        if not isinstance(odds, dict):
            odds = {}
        markets = build_market_entries(odds.get("bookmakers"))
        document = build_cache_document(event, event_id, markets, default_game_id=sport_key)
        await self._repository.upsert(
            cache_document_id(self._settings.ODDS_SPORT_PREFIX, event_id), document
        )

    async def run(self) -> OddsFetchResult:
        started = time.monotonic()
        sport_key = self._settings.ODDS_SPORT_KEY
        logger.info("Starting odds fetch for %s", sport_key)

        try:
            events = await self._provider.get_events(sport_key)
            if not isinstance(events, list):
                events = []
            logger.info("Found %d %s events", len(events), sport_key)

            if not events:
                logger.info("No events to process")
                return OddsFetchResult(ok=True, count=0, message="No events found")

            results: list[EventSuccess] = []
            errors: list[EventError] = []
            total = len(events)

            for index, event in enumerate(events):
                if not isinstance(event, dict):
                    event = {}
                event_id = str(event.get("id") or "")

                if not event_id:
                    logger.warning("Skipping event %d with no ID", index)
                else:
                    logger.info(
                        "Fetching odds for event %d/%d: %s (%s vs %s)",
                        index + 1, total, event_id,
                        event.get("home_team") or "?", event.get("away_team") or "?",
                    )
                    try:
                        await self._process_event(event, event_id)
                    except Exception as exc:
                        message = str(exc) or exc.__class__.__name__
                        logger.error("Failed to fetch odds for event %s: %s", event_id, message)
                        errors.append(EventError(event_id=event_id, error=message))
                    else:
                        results.append(EventSuccess(event_id=event_id))
                        logger.info("Cached odds for event %s", event_id)

                if index < total - 1:
                    await self._throttle.wait()

            duration = _duration_since(started)
            logger.info(
                "Odds fetch complete in %ss. Success: %d, Errors: %d",
                duration, len(results), len(errors),
            )
            usage = getattr(self._provider, "api_usage", None) or {}
            if usage.get("requests_remaining") is not None:
                logger.info(
                    "API usage: %s used, %s remaining",
                    usage.get("requests_used", "?"),
                    usage.get("requests_remaining", "?"),
                )
            return OddsFetchResult(
                ok=True,
                count=len(results),
                errors=len(errors),
                duration=duration,
                results=results,
                error_details=errors,
            )
        except Exception as exc:
            duration = _duration_since(started)
            logger.exception("Odds fetch aborted after %ss", duration)
            return OddsFetchResult(ok=False, error=str(exc) or exc.__class__.__name__, duration=duration)


async def fetch_and_cache_odds(
    cfg: Settings | None = None,
    *,
    provider: BaseOddsProvider | None = None,
    repository: OddsCacheRepository | None = None,
    throttle: EventThrottle | None = None,
    guard: RunGuard | None = None,
) -> OddsFetchResult:
    """Run one odds-fetch batch. Never raises; failures come back as ok=False."""
    cfg = cfg or settings
    guard = guard or run_guard

    if not cfg.ODDS_API_KEY:
        logger.error("ODDS_API_KEY not set, skipping")
        return OddsFetchResult(ok=False, error="Missing ODDS_API_KEY")

    if repository is None:
        store = _db.get_db()
        if store is None:
            logger.error("Document store not initialized, skipping")
            return OddsFetchResult(ok=False, error="Document store not initialized")
        repository = OddsCacheRepository(store[cfg.ODDS_CACHE_COLLECTION])

    try:
        async with guard.hold(JOB_ID):
            owns_provider = provider is None
            if owns_provider:
                provider = TheOddsAPIProvider(cfg)
            try:
                pipeline = OddsFetchPipeline(cfg, provider, repository, throttle)
                return await pipeline.run()
            finally:
                if owns_provider:
                    try:
                        await provider.aclose()
                    except Exception:
                        logger.warning("Failed to close odds provider client", exc_info=True)
    except JobAlreadyRunningError as exc:
        logger.warning("Odds fetch requested while another run is in flight")
        return OddsFetchResult(ok=False, error=str(exc), already_running=True)
