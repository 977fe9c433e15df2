import logging
from typing import Any
from urllib.parse import quote

from oddscron.config import Settings, settings
from oddscron.providers.base import BaseOddsProvider
from oddscron.providers.http_client import ProviderClient, _safe_url
from oddscron.services.provider_rate_limiter import TokenBucket, provider_buckets

logger = logging.getLogger("oddscron.odds_api")

PROVIDER_NAME = "theoddsapi"


class TheOddsAPIProvider(BaseOddsProvider):
    """The Odds API v4: event list and per-event odds.

    Errors are not swallowed here; the pipeline decides whether a failure
    aborts the run or only the current event.
    """

    def __init__(
        self,
        cfg: Settings | None = None,
        client: ProviderClient | None = None,
        bucket: TokenBucket | None = None,
    ):
        self._settings = cfg or settings
        self._client = client or ProviderClient(
            PROVIDER_NAME, timeout=self._settings.ODDS_REQUEST_TIMEOUT_SECONDS
        )
        self._bucket = bucket or provider_buckets.get(
            PROVIDER_NAME, self._settings.THEODDSAPI_RATE_LIMIT_RPM
        )
        self._api_usage: dict[str, int | None] = {"requests_used": None, "requests_remaining": None}

    @property
    def base_url(self) -> str:
        return self._settings.THEODDSAPI_BASE_URL.rstrip("/")

    def _track_usage_headers(self, resp) -> None:
        """Extract and store API usage from response headers."""
        for header, key in (
            ("x-requests-used", "requests_used"),
            ("x-requests-remaining", "requests_remaining"),
        ):
            value = resp.headers.get(header)
            if value is None:
                continue
            try:
                self._api_usage[key] = int(float(value))
            except (TypeError, ValueError):
                logger.debug("Ignoring non-numeric %s header: %r", header, value)

    async def _get_json(self, url: str, params: dict[str, str]) -> Any:
        await self._bucket.acquire()
        resp = await self._client.get(
            url,
            params={"apiKey": self._settings.ODDS_API_KEY, **params},
            timeout=self._settings.ODDS_REQUEST_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        self._track_usage_headers(resp)
        try:
            return resp.json()
        except ValueError:
            # Maintenance pages and truncated bodies read as an empty payload.
            logger.warning("Non-JSON body from %s (status %d)", _safe_url(url), resp.status_code)
            return None

    async def get_events(self, sport_key: str) -> list[dict[str, Any]]:
        raw = await self._get_json(f"{self.base_url}/sports/{sport_key}/events", {})
        if not isinstance(raw, list):
            logger.warning("Events response for %s is not a list; treating as empty", sport_key)
            return []
        return raw

    async def get_event_odds(
        self, sport_key: str, event_id: str, markets: list[str]
    ) -> dict[str, Any]:
        url = f"{self.base_url}/sports/{sport_key}/events/{quote(event_id, safe='')}/odds"
        raw = await self._get_json(
            url,
            {
                "regions": self._settings.ODDS_REGIONS,
                "oddsFormat": self._settings.ODDS_FORMAT,
                "markets": ",".join(markets),
            },
        )
        return raw if isinstance(raw, dict) else {}

    @property
    def api_usage(self) -> dict:
        return dict(self._api_usage)

    async def aclose(self) -> None:
        await self._client.aclose()
