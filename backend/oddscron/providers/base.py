from abc import ABC, abstractmethod
from typing import Any


class BaseOddsProvider(ABC):
    """Abstract base class for per-event odds providers."""

    @abstractmethod
    async def get_events(self, sport_key: str) -> list[dict[str, Any]]:
        """Fetch upcoming events for a sport.

        Returns the provider's raw event dicts (at least ``id``; usually
        ``sport_key``, ``home_team``, ``away_team``, ``commence_time``).
        A malformed payload yields an empty list.
        """
        ...

    @abstractmethod
    async def get_event_odds(
        self, sport_key: str, event_id: str, markets: list[str]
    ) -> dict[str, Any]:
        """Fetch bookmaker odds for one event.

        Returns the raw event-odds dict with a ``bookmakers`` list. Raises on
        transport errors and non-2xx responses.
        """
        ...
