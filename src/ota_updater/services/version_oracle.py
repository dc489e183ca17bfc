"""Latest-version lookup against the update server."""

import logging

from ota_updater.models.config import OtaConfig
from ota_updater.services.transport import ConnectivityGate, Fetcher

# Shorter bodies are error payloads, not versions
MIN_VERSION_LENGTH = 6


class VersionOracle:
    """Decides whether the server publishes a build other than ours."""

    def __init__(self, config: OtaConfig, fetcher: Fetcher, gate: ConnectivityGate):
        self.logger = logging.getLogger("ota_updater.version")
        self.config = config
        self.fetcher = fetcher
        self.gate = gate

    def is_valid_version(self, version: str) -> bool:
        """Check a fetched string is plausibly a version identifier."""
        return MIN_VERSION_LENGTH <= len(version) <= self.config.version_max_length

    async def is_new_version_available(self) -> bool:
        """Fetch the published version and compare it to the running build.

        Returns:
            True only for a valid version string different from
            ``config.current_version``; False when offline, when the
            response is malformed, or when versions match exactly.
        """
        if not await self.gate.ensure_connected():
            self.logger.info("No network, skipping version check")
            return False

        latest = await self.fetcher.fetch(self.config.version_url)
        self.logger.debug(f"Server version response: {latest!r}")

        if not self.is_valid_version(latest):
            self.logger.warning(
                f"Malformed version response ({len(latest)} chars), "
                f"treating as no update"
            )
            return False

        if latest == self.config.current_version:
            self.logger.info(f"Already on latest version {latest}")
            return False

        self.logger.info(
            f"New version available: {latest} (current {self.config.current_version})"
        )
        return True
