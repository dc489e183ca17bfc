"""Network collaborators: body fetch and connectivity check."""

import logging
from typing import Protocol

import httpx


class Fetcher(Protocol):
    """Fetch a URL and return its body as text."""

    async def fetch(self, url: str) -> str: ...


class ConnectivityGate(Protocol):
    """Report whether the network is reachable."""

    async def ensure_connected(self) -> bool: ...


class HttpFetcher:
    """GET-based fetcher that never raises.

    The body is returned whatever the status code; transport errors
    produce an empty body.
    """

    def __init__(self, timeout: float = 30.0):
        self.logger = logging.getLogger("ota_updater.transport")
        self.timeout = timeout

    async def fetch(self, url: str) -> str:
        self.logger.debug(f"GET {url}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url)
                self.logger.debug(
                    f"GET {url} -> {response.status_code}, {len(response.text)} chars"
                )
                return response.text
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.warning(f"Fetch failed for {url}: {e}")
            return ""


class HttpConnectivityGate:
    """Treats any HTTP response from a known host as connectivity."""

    def __init__(self, check_url: str, timeout: float = 5.0):
        self.logger = logging.getLogger("ota_updater.transport")
        self.check_url = check_url
        self.timeout = timeout

    async def ensure_connected(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                await client.head(self.check_url)
            return True
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.warning(f"Network unreachable ({self.check_url}): {e}")
            return False
