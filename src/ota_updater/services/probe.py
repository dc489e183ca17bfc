"""Package existence probe."""

import logging

from ota_updater.models.config import OtaConfig
from ota_updater.services.transport import ConnectivityGate, Fetcher


class AvailabilityProbe:
    """Checks a test URL for the "package exists" sentinel body.

    Only an exact sentinel match counts. Empty bodies, error pages and
    bodies that merely contain the sentinel are all negative.
    """

    def __init__(self, config: OtaConfig, fetcher: Fetcher, gate: ConnectivityGate):
        self.logger = logging.getLogger("ota_updater.probe")
        self.sentinel = config.exists_sentinel
        self.fetcher = fetcher
        self.gate = gate

    async def exists(self, url: str) -> bool:
        if not await self.gate.ensure_connected():
            return False

        body = await self.fetcher.fetch(url)
        found = len(body) == len(self.sentinel) and body == self.sentinel
        self.logger.info(f"Probe {url}: {'found' if found else 'not found'}")
        return found
