import logging
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("oddscron.http_client")


def _safe_url(url: str) -> str:
    """Strip query params (may contain API keys) for safe logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class ProviderClient:
    """httpx.AsyncClient wrapper that logs failures without leaking query strings.

    Requests are made exactly once; non-2xx responses are returned to the
    caller, which decides whether to raise.
    """

    def __init__(self, name: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._name = name

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "[%s] Network error on %s %s: %s",
                self._name, method, _safe_url(url), exc,
            )
            raise

        if resp.status_code == 429:
            logger.warning("[%s] Rate limited (429) on %s %s", self._name, method, _safe_url(url))
        elif resp.status_code >= 400:
            logger.warning(
                "[%s] HTTP %d on %s %s",
                self._name, resp.status_code, method, _safe_url(url),
            )
        return resp

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
