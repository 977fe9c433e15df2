"""
backend/oddscron/models/odds_cache.py

Purpose:
    Odds cache document, its market entries, and the run results returned by
    the odds-fetch pipeline and the settlement trigger. Stored and returned
    with camelCase keys, which downstream readers of the cache rely on.

Dependencies:
    - pydantic
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Closed market taxonomy; order is the order requested from the provider.
MARKET_KEYS: tuple[str, ...] = (
    "h2h",
    "totals",
    "player_shots_on_goal",
    "player_goals",
    "player_assists",
    "player_points",
    "player_goal_scorer_anytime",
    "player_goal_scorer_first",
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=False)


class MarketEntry(_CamelModel):
    bookmaker: str
    selection: str = ""
    description: str = ""
    odds: float = 0.0
    point: float | None = None
    last_updated: str = ""


def empty_markets() -> dict[str, list[MarketEntry]]:
    return {key: [] for key in MARKET_KEYS}


class OddsCacheDocument(_CamelModel):
    event_id: str
    game_id: str
    home_team: str = ""
    away_team: str = ""
    commence_time: str = ""
    last_fetched: int
    markets: dict[str, list[MarketEntry]] = Field(default_factory=empty_markets)


class EventSuccess(_CamelModel):
    event_id: str
    success: bool = True


class EventError(_CamelModel):
    event_id: str
    error: str


class OddsFetchResult(_CamelModel):
    ok: bool
    count: int | None = None
    errors: int | None = None
    duration: str | None = None
    results: list[EventSuccess] | None = None
    error_details: list[EventError] | None = None
    message: str | None = None
    error: str | None = None
    already_running: bool | None = None

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SettleResult(_CamelModel):
    ok: bool
    status: int | None = None
    body: str | None = None
    error: str | None = None

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
