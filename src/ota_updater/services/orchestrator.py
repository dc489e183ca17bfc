"""End-to-end update flow as an explicit state machine."""

import logging
from typing import Awaitable, Callable, Optional, Protocol

from ota_updater.models.config import OtaConfig
from ota_updater.models.result import UpdateResult
from ota_updater.models.status import (
    MessageIcon,
    PackageErrorKind,
    UpdateOutcome,
    UpdateState,
)
from ota_updater.services.download import DownloadService
from ota_updater.services.link_resolver import DeviceLinkResolver
from ota_updater.services.probe import AvailabilityProbe
from ota_updater.services.reporter import ProgressSink
from ota_updater.services.transport import (
    ConnectivityGate,
    Fetcher,
    HttpConnectivityGate,
    HttpFetcher,
)
from ota_updater.services.version_oracle import VersionOracle
from ota_updater.utils.url_template import expand


class DeviceModelProvider(Protocol):
    def get_model(self) -> str: ...


class Installer(Protocol):
    async def update_from(
        self, url: str
    ) -> tuple[UpdateOutcome, Optional[PackageErrorKind]]: ...


class ConfiguredDeviceModel:
    """Device model taken from configuration."""

    def __init__(self, config: OtaConfig):
        self.model = config.device_model

    def get_model(self) -> str:
        return self.model


class UpdateOrchestrator:
    """Runs one update attempt from connectivity check to terminal outcome.

    Each state has a handler returning the next state. Terminal handlers
    record the outcome on the run's result and return ``UpdateState.DONE``.
    Nothing is shared between runs, so ``run()`` may be called repeatedly.
    """

    def __init__(
        self,
        config: OtaConfig,
        gate: ConnectivityGate,
        oracle: VersionOracle,
        probe: AvailabilityProbe,
        resolver: DeviceLinkResolver,
        installer: Installer,
        device: DeviceModelProvider,
        sink: ProgressSink,
        on_state: Optional[Callable[[UpdateState], None]] = None,
    ):
        self.logger = logging.getLogger("ota_updater.orchestrator")
        self.config = config
        self.gate = gate
        self.oracle = oracle
        self.probe = probe
        self.resolver = resolver
        self.installer = installer
        self.device = device
        self.sink = sink
        self.on_state = on_state

        self._handlers: dict[UpdateState, Callable[[UpdateResult], Awaitable[UpdateState]]] = {
            UpdateState.START: self._start,
            UpdateState.NETWORK_CONNECT: self._network_connect,
            UpdateState.VERSION_CHECK: self._version_check,
            UpdateState.DEVICE_MODEL_LOOKUP: self._device_model_lookup,
            UpdateState.PRIMARY_PROBE: self._primary_probe,
            UpdateState.PRIMARY_DOWNLOAD: self._download,
            UpdateState.LINK_RESOLVE: self._link_resolve,
            UpdateState.LINKED_PROBE: self._linked_probe,
            UpdateState.LINKED_DOWNLOAD: self._download,
        }

    async def run(self) -> UpdateResult:
        """Drive the state machine until it reaches DONE.

        Returns:
            UpdateResult with the terminal outcome and the visited states
        """
        run = UpdateResult()
        state = UpdateState.START

        while state != UpdateState.DONE:
            self._enter(run, state)
            state = await self._handlers[state](run)

        self._enter(run, UpdateState.DONE)
        self.logger.info(
            f"Update run finished: outcome={run.outcome.value}, "
            f"device={run.device_model}, target={run.target_model}"
        )
        return run

    def _enter(self, run: UpdateResult, state: UpdateState) -> None:
        run.state = state
        run.visited.append(state)
        self.logger.debug(f"Entering state {state.value}")
        if self.on_state is not None:
            self.on_state(state)

    async def _progress(self, text: str, percent: int, model: str = "") -> None:
        await self.sink.report_progress(
            expand(text, model, self.config.device_placeholder), percent
        )

    async def _terminate(
        self,
        run: UpdateResult,
        outcome: UpdateOutcome,
        icon: MessageIcon,
        text: str,
        duration_ms: int,
    ) -> UpdateState:
        run.outcome = outcome
        await self.sink.report_message(icon, self.config.message_title, text, duration_ms)
        return UpdateState.DONE

    async def _start(self, run: UpdateResult) -> UpdateState:
        await self._progress("Checking network connection...", 0)
        return UpdateState.NETWORK_CONNECT

    async def _network_connect(self, run: UpdateResult) -> UpdateState:
        if not await self.gate.ensure_connected():
            return await self._terminate(
                run,
                UpdateOutcome.NO_NETWORK,
                MessageIcon.ERROR,
                "Couldn't connect to the network!",
                2000,
            )
        await self._progress("Checking for updates...", 10)
        return UpdateState.VERSION_CHECK

    async def _version_check(self, run: UpdateResult) -> UpdateState:
        if not await self.oracle.is_new_version_available():
            return await self._terminate(
                run,
                UpdateOutcome.UP_TO_DATE,
                MessageIcon.INFORMATION,
                "You have the latest version.",
                2000,
            )
        return UpdateState.DEVICE_MODEL_LOOKUP

    async def _device_model_lookup(self, run: UpdateResult) -> UpdateState:
        run.device_model = self.device.get_model()
        run.target_model = run.device_model
        await self._progress("Searching update package for [DEVICE]...", 20, run.device_model)
        return UpdateState.PRIMARY_PROBE

    async def _primary_probe(self, run: UpdateResult) -> UpdateState:
        if await self.probe.exists(self._test_url(run.device_model)):
            await self._progress("Downloading package for [DEVICE]...", 50, run.device_model)
            return UpdateState.PRIMARY_DOWNLOAD

        await self._progress("Searching twin device for [DEVICE]...", 30, run.device_model)
        return UpdateState.LINK_RESOLVE

    async def _link_resolve(self, run: UpdateResult) -> UpdateState:
        linked = await self.resolver.resolve_linked_device(run.device_model)
        if linked is None:
            run.target_model = None
            return await self._terminate(
                run,
                UpdateOutcome.NOT_AVAILABLE,
                MessageIcon.WARNING,
                f"Update is not available for your device!\nDevice model: {run.device_model}",
                5000,
            )

        run.target_model = linked
        await self._progress("Searching update package for [DEVICE]...", 40, linked)
        return UpdateState.LINKED_PROBE

    async def _linked_probe(self, run: UpdateResult) -> UpdateState:
        if await self.probe.exists(self._test_url(run.target_model)):
            await self._progress("Downloading package for [DEVICE]...", 50, run.target_model)
            return UpdateState.LINKED_DOWNLOAD

        return await self._terminate(
            run, UpdateOutcome.FAILED, MessageIcon.ERROR, "Failed updating!", 2000
        )

    async def _download(self, run: UpdateResult) -> UpdateState:
        if not await self.gate.ensure_connected():
            return await self._terminate(
                run,
                UpdateOutcome.NO_NETWORK,
                MessageIcon.ERROR,
                "Couldn't connect to the network!",
                2000,
            )

        run.download_url = expand(
            self.config.download_url_template,
            run.target_model,
            self.config.device_placeholder,
        )
        outcome, package_error = await self.installer.update_from(run.download_url)
        run.outcome = outcome
        run.package_error = package_error
        return UpdateState.DONE

    def _test_url(self, model: str) -> str:
        return expand(self.config.test_url_template, model, self.config.device_placeholder)


def build_orchestrator(
    config: OtaConfig,
    sink: ProgressSink,
    fetcher: Optional[Fetcher] = None,
    gate: Optional[ConnectivityGate] = None,
    device: Optional[DeviceModelProvider] = None,
    installer: Optional[Installer] = None,
    on_state: Optional[Callable[[UpdateState], None]] = None,
) -> UpdateOrchestrator:
    """Wire an orchestrator from configuration, with HTTP collaborators by default."""
    fetcher = fetcher or HttpFetcher(timeout=config.http_timeout)
    gate = gate or HttpConnectivityGate(config.connectivity_url)
    return UpdateOrchestrator(
        config=config,
        gate=gate,
        oracle=VersionOracle(config, fetcher, gate),
        probe=AvailabilityProbe(config, fetcher, gate),
        resolver=DeviceLinkResolver(config, fetcher, gate),
        installer=installer or DownloadService(config, sink),
        device=device or ConfiguredDeviceModel(config),
        sink=sink,
        on_state=on_state,
    )
