"""Package download followed by validation."""

import logging
from pathlib import Path
from typing import Optional

import aiofiles
import httpx

from ota_updater.models.config import OtaConfig
from ota_updater.models.status import MessageIcon, PackageErrorKind, UpdateOutcome
from ota_updater.services.package_validator import PackageValidator
from ota_updater.services.reporter import ProgressSink

# Download progress is mapped onto this slice of the overall bar
PROGRESS_START = 50
PROGRESS_END = 90


class DownloadService:
    """Fetches an update package and stages it for installation.

    One attempt per call: no retries and no resume.
    """

    def __init__(
        self,
        config: OtaConfig,
        sink: ProgressSink,
        validator: Optional[PackageValidator] = None,
    ):
        """Initialize download service.

        Args:
            config: OTA configuration (download dir, package name, timeout)
            sink: Progress and message sink
            validator: PackageValidator (built from config if None)
        """
        self.logger = logging.getLogger("ota_updater.download")
        self.config = config
        self.sink = sink
        self.validator = validator or PackageValidator(config, sink)
        self.chunk_size = 64 * 1024  # 64KB chunks for progress granularity

    async def update_from(self, url: str) -> tuple[UpdateOutcome, Optional[PackageErrorKind]]:
        """Download the package at ``url`` and validate it.

        Args:
            url: Real package download URL

        Returns:
            (outcome, package_error): READY_TO_INSTALL on success,
            DOWNLOAD_FAILED on transport errors, INVALID_PACKAGE with the
            failing gate otherwise
        """
        target_path = Path(self.config.download_dir) / self.config.package_name
        self.logger.info(f"Starting download: url={url}, target={target_path}")

        try:
            await self._download(url, target_path)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            self.logger.error(f"Download failed: {e}", exc_info=True)
            target_path.unlink(missing_ok=True)
            await self.sink.report_message(
                MessageIcon.ERROR, self.config.message_title, "Download failed!", 2000
            )
            return UpdateOutcome.DOWNLOAD_FAILED, None

        await self.sink.report_progress("Verifying package...", PROGRESS_END)
        check = await self.validator.got_valid_package(
            target_path.parent.as_posix(), target_path.name, self.config.binary_path
        )
        if not check:
            return UpdateOutcome.INVALID_PACKAGE, check.error

        self.logger.info(f"Package ready to install: {target_path}")
        await self.sink.report_progress("Package ready to install", 100)
        await self.sink.report_message(
            MessageIcon.INFORMATION,
            self.config.message_title,
            f"Update downloaded from {url}",
            5000,
        )
        return UpdateOutcome.READY_TO_INSTALL, None

    async def _download(self, url: str, target_path: Path) -> None:
        """Stream ``url`` into ``target_path``, overwriting any earlier file."""
        target_path.parent.mkdir(parents=True, exist_ok=True)

        async with httpx.AsyncClient(
            timeout=self.config.http_timeout, follow_redirects=True
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length", 0) or 0)

                bytes_downloaded = 0
                last_progress = -1
                async with aiofiles.open(target_path, "wb") as f:
                    async for chunk in response.aiter_bytes(chunk_size=self.chunk_size):
                        await f.write(chunk)
                        bytes_downloaded += len(chunk)

                        if total <= 0:
                            continue
                        # Report every 10%
                        current = min(100, int(bytes_downloaded * 100 / total))
                        if current >= last_progress + 10:
                            last_progress = current
                            self.logger.debug(
                                f"Download progress: {current}% "
                                f"({bytes_downloaded}/{total} bytes)"
                            )
                            await self.sink.report_progress(
                                f"Downloading package... {current}%",
                                PROGRESS_START
                                + (PROGRESS_END - PROGRESS_START) * current // 100,
                            )

        self.logger.info(f"Downloaded {bytes_downloaded} bytes")
