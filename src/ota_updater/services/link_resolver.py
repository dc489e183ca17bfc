"""Linked ("twin") device lookup."""

import logging
from typing import Optional

from ota_updater.models.config import OtaConfig
from ota_updater.services.transport import ConnectivityGate, Fetcher
from ota_updater.utils.url_template import expand


class DeviceLinkResolver:
    """Asks the server whether a model shares another model's packages."""

    def __init__(self, config: OtaConfig, fetcher: Fetcher, gate: ConnectivityGate):
        self.logger = logging.getLogger("ota_updater.link")
        self.config = config
        self.fetcher = fetcher
        self.gate = gate

    async def resolve_linked_device(self, device_model: str) -> Optional[str]:
        """Look up the model this device is linked to.

        Args:
            device_model: Model number of this device

        Returns:
            Linked model, or None when offline, not linked, or the
            response is longer than ``version_max_length``
        """
        if not await self.gate.ensure_connected():
            return None

        url = expand(
            self.config.link_url_template, device_model, self.config.device_placeholder
        )
        linked = await self.fetcher.fetch(url)

        if 0 < len(linked) <= self.config.version_max_length:
            self.logger.info(f"Device {device_model} is linked to {linked}")
            return linked

        if linked:
            self.logger.warning(
                f"Ignoring oversized link response for {device_model} "
                f"({len(linked)} chars)"
            )
        else:
            self.logger.info(f"Device {device_model} is not linked")
        return None
