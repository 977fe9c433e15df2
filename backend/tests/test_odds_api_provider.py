"""
backend/tests/test_odds_api_provider.py

Purpose:
    The Odds API provider wire contract: endpoints, query parameters, usage
    header tracking, error propagation, and non-JSON bodies read as empty.
"""

from __future__ import annotations

import httpx
import pytest

from oddscron.models.odds_cache import MARKET_KEYS
from oddscron.providers.http_client import ProviderClient, _safe_url
from oddscron.providers.odds_api import TheOddsAPIProvider


def _provider(cfg, handler) -> TheOddsAPIProvider:
    client = ProviderClient("theoddsapi", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return TheOddsAPIProvider(cfg, client=client)


@pytest.mark.asyncio
async def test_get_events_hits_events_endpoint_with_api_key(cfg):
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[{"id": "e1"}],
            headers={"x-requests-used": "12", "x-requests-remaining": "488"},
        )

    provider = _provider(cfg, _handler)
    events = await provider.get_events("icehockey_nhl")

    assert events == [{"id": "e1"}]
    assert seen[0].url.path == "/v4/sports/icehockey_nhl/events"
    assert seen[0].url.params["apiKey"] == "odds-key"
    assert provider.api_usage == {"requests_used": 12, "requests_remaining": 488}


@pytest.mark.asyncio
async def test_get_events_non_list_payload_is_empty(cfg):
    provider = _provider(cfg, lambda request: httpx.Response(200, json={"message": "quota"}))
    assert await provider.get_events("icehockey_nhl") == []


@pytest.mark.asyncio
async def test_get_events_non_json_body_is_empty(cfg):
    provider = _provider(cfg, lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    assert await provider.get_events("icehockey_nhl") == []


@pytest.mark.asyncio
async def test_get_event_odds_query_parameters(cfg):
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "a/b", "bookmakers": []})

    provider = _provider(cfg, _handler)
    payload = await provider.get_event_odds("icehockey_nhl", "a/b", list(MARKET_KEYS))

    assert payload == {"id": "a/b", "bookmakers": []}
    request = seen[0]
    assert request.url.raw_path.startswith(b"/v4/sports/icehockey_nhl/events/a%2Fb/odds")
    params = request.url.params
    assert params["apiKey"] == "odds-key"
    assert params["regions"] == "us,eu"
    assert params["oddsFormat"] == "decimal"
    assert params["markets"] == ",".join(MARKET_KEYS)


@pytest.mark.asyncio
async def test_get_event_odds_raises_on_http_error(cfg):
    provider = _provider(cfg, lambda request: httpx.Response(422, json={"message": "bad market"}))

    with pytest.raises(httpx.HTTPStatusError):
        await provider.get_event_odds("icehockey_nhl", "e1", ["h2h"])


@pytest.mark.asyncio
async def test_get_event_odds_non_object_payload_is_empty(cfg):
    provider = _provider(cfg, lambda request: httpx.Response(200, json=["unexpected"]))
    assert await provider.get_event_odds("icehockey_nhl", "e1", ["h2h"]) == {}


@pytest.mark.asyncio
async def test_get_event_odds_truncated_body_is_empty(cfg):
    provider = _provider(cfg, lambda request: httpx.Response(200, text='{"id": "e1", "bookm'))
    assert await provider.get_event_odds("icehockey_nhl", "e1", ["h2h"]) == {}


def test_providers_share_one_rate_limit_bucket(cfg):
    first = _provider(cfg, lambda request: httpx.Response(200, json=[]))
    second = _provider(cfg, lambda request: httpx.Response(200, json=[]))

    assert first._bucket is second._bucket


def test_safe_url_strips_api_key():
    assert _safe_url("https://api.the-odds-api.com/v4/sports/x/events?apiKey=secret") == (
        "https://api.the-odds-api.com/v4/sports/x/events"
    )
