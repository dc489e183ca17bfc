"""Progress and message sinks."""

import logging
from typing import Optional, Protocol

import httpx

from ota_updater.api.models import ReportPayload
from ota_updater.models.status import MessageIcon
from ota_updater.services.state_manager import StateManager


class ProgressSink(Protocol):
    """Receives progress updates and user-facing messages.

    Fire-and-forget: implementations must not raise.
    """

    async def report_progress(self, text: str, percent: int) -> None: ...

    async def report_message(
        self, icon: MessageIcon, title: str, text: str, duration_ms: int
    ) -> None: ...


class StateProgressSink:
    """Mirrors progress into the StateManager for GET /progress."""

    def __init__(self, state_manager: Optional[StateManager] = None):
        self.state_manager = state_manager or StateManager()

    async def report_progress(self, text: str, percent: int) -> None:
        self.state_manager.update_progress(percent, text)

    async def report_message(
        self, icon: MessageIcon, title: str, text: str, duration_ms: int
    ) -> None:
        status = self.state_manager.get_status()
        self.state_manager.update_progress(status.progress, text)


class ReportService:
    """Handles progress reporting to device-api."""

    def __init__(self, device_api_url: str = "http://localhost:9080"):
        """Initialize report service.

        Args:
            device_api_url: Base URL of device-api service (default: http://localhost:9080)
        """
        self.logger = logging.getLogger("ota_updater.reporter")
        self.device_api_url = device_api_url
        self.report_endpoint = f"{device_api_url}/api/v1.0/ota/report"

    async def report_progress(self, text: str, percent: int) -> None:
        """Send a progress update to device-api.

        Args:
            text: Progress text, device model already interpolated
            percent: Percentage completion (0-100)
        """
        await self._post(ReportPayload(progress=percent, message=text))

    async def report_message(
        self, icon: MessageIcon, title: str, text: str, duration_ms: int
    ) -> None:
        """Ask device-api to show a message box."""
        await self._post(
            ReportPayload(message=text, icon=icon, title=title, duration_ms=duration_ms)
        )

    async def _post(self, payload: ReportPayload) -> None:
        """POST a payload; failures are logged but not raised."""
        self.logger.debug(f"Reporting to device-api: {payload.message}")

        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.post(
                    self.report_endpoint,
                    json=payload.model_dump(mode="json"),
                )
                response.raise_for_status()
                self.logger.debug("Report sent successfully")

        except httpx.HTTPError as e:
            self.logger.warning(
                f"Failed to report to device-api: {e}. Continuing OTA operation..."
            )
        except Exception as e:
            self.logger.error(
                f"Unexpected error reporting to device-api: {e}",
                exc_info=True,
            )


class CompositeSink:
    """Forwards every notification to each wrapped sink in order."""

    def __init__(self, *sinks: ProgressSink):
        self.sinks = sinks

    async def report_progress(self, text: str, percent: int) -> None:
        for sink in self.sinks:
            await sink.report_progress(text, percent)

    async def report_message(
        self, icon: MessageIcon, title: str, text: str, duration_ms: int
    ) -> None:
        for sink in self.sinks:
            await sink.report_message(icon, title, text, duration_ms)
