"""Unit tests for UpdateOrchestrator end-to-end decision flow."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from ota_updater.models.status import (
    MessageIcon,
    PackageErrorKind,
    UpdateOutcome,
    UpdateState,
)
from ota_updater.services.orchestrator import ConfiguredDeviceModel, build_orchestrator
from ota_updater.services.transport import HttpFetcher

VERSION_URL = "http://ota.test/version"
TEST_PB632 = "http://ota.test/pkg/PB632/exists"
TEST_PB631 = "http://ota.test/pkg/PB631/exists"
LINK_PB632 = "http://ota.test/link/PB632"
DOWNLOAD_PB632 = "http://ota.test/pkg/PB632/cr3.zip"
DOWNLOAD_PB631 = "http://ota.test/pkg/PB631/cr3.zip"


@pytest.mark.unit
class TestUpdateOrchestrator:
    """Walk every branch of the state machine with fake collaborators."""

    @pytest.fixture
    def installer(self):
        installer = MagicMock()
        installer.update_from = AsyncMock(
            return_value=(UpdateOutcome.READY_TO_INSTALL, None)
        )
        return installer

    @pytest.fixture
    def device(self, ota_config):
        device = MagicMock(wraps=ConfiguredDeviceModel(ota_config))
        return device

    @pytest.fixture
    def states(self):
        return []

    @pytest.fixture
    def orchestrator(self, ota_config, sink, fetcher, gate, device, installer, states):
        return build_orchestrator(
            ota_config,
            sink,
            fetcher=fetcher,
            gate=gate,
            device=device,
            installer=installer,
            on_state=states.append,
        )

    @pytest.mark.asyncio
    async def test_no_network(self, orchestrator, fetcher, gate, sink, device):
        gate.connected = False

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.NO_NETWORK
        assert result.visited == [
            UpdateState.START,
            UpdateState.NETWORK_CONNECT,
            UpdateState.DONE,
        ]
        assert fetcher.calls == []
        device.get_model.assert_not_called()
        assert sink.messages == [
            (MessageIcon.ERROR, "CoolReader", "Couldn't connect to the network!", 2000)
        ]

    @pytest.mark.asyncio
    async def test_up_to_date(self, orchestrator, fetcher, ota_config, sink, device):
        fetcher.responses[VERSION_URL] = ota_config.current_version

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.UP_TO_DATE
        assert UpdateState.DEVICE_MODEL_LOOKUP not in result.visited
        assert fetcher.calls == [VERSION_URL]
        device.get_model.assert_not_called()
        assert sink.messages[-1][2] == "You have the latest version."
        assert sink.messages[-1][0] == MessageIcon.INFORMATION

    @pytest.mark.asyncio
    async def test_malformed_version_is_up_to_date(self, orchestrator, fetcher):
        fetcher.responses[VERSION_URL] = "error"

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.UP_TO_DATE

    @pytest.mark.asyncio
    async def test_primary_package_downloads_without_link_lookup(
        self, orchestrator, fetcher, installer, sink
    ):
        fetcher.responses[VERSION_URL] = "2.5.5-01"
        fetcher.responses[TEST_PB632] = "exists"

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.READY_TO_INSTALL
        assert result.updated is True
        assert result.device_model == "PB632"
        assert result.target_model == "PB632"
        assert result.download_url == DOWNLOAD_PB632
        installer.update_from.assert_awaited_once_with(DOWNLOAD_PB632)
        assert LINK_PB632 not in fetcher.calls
        assert UpdateState.LINK_RESOLVE not in result.visited
        assert result.visited == [
            UpdateState.START,
            UpdateState.NETWORK_CONNECT,
            UpdateState.VERSION_CHECK,
            UpdateState.DEVICE_MODEL_LOOKUP,
            UpdateState.PRIMARY_PROBE,
            UpdateState.PRIMARY_DOWNLOAD,
            UpdateState.DONE,
        ]
        assert sink.progress == [
            ("Checking network connection...", 0),
            ("Checking for updates...", 10),
            ("Searching update package for PB632...", 20),
            ("Downloading package for PB632...", 50),
        ]

    @pytest.mark.asyncio
    async def test_not_available_when_not_linked(self, orchestrator, fetcher, installer, sink):
        fetcher.responses[VERSION_URL] = "2.5.5-01"
        fetcher.responses[LINK_PB632] = ""

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.NOT_AVAILABLE
        assert fetcher.calls == [VERSION_URL, TEST_PB632, LINK_PB632]
        assert UpdateState.LINKED_PROBE not in result.visited
        installer.update_from.assert_not_awaited()
        icon, _, text, duration = sink.messages[-1]
        assert icon == MessageIcon.WARNING
        assert text == "Update is not available for your device!\nDevice model: PB632"
        assert duration == 5000

    @pytest.mark.asyncio
    async def test_linked_probe_fails(self, orchestrator, fetcher, installer, sink):
        fetcher.responses[VERSION_URL] = "2.5.5-01"
        fetcher.responses[LINK_PB632] = "PB631"

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.FAILED
        assert fetcher.calls == [VERSION_URL, TEST_PB632, LINK_PB632, TEST_PB631]
        installer.update_from.assert_not_awaited()
        assert sink.messages[-1] == (MessageIcon.ERROR, "CoolReader", "Failed updating!", 2000)

    @pytest.mark.asyncio
    async def test_linked_package_downloads(self, orchestrator, fetcher, installer, sink):
        fetcher.responses[VERSION_URL] = "2.5.5-01"
        fetcher.responses[LINK_PB632] = "PB631"
        fetcher.responses[TEST_PB631] = "exists"

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.READY_TO_INSTALL
        assert result.device_model == "PB632"
        assert result.target_model == "PB631"
        installer.update_from.assert_awaited_once_with(DOWNLOAD_PB631)
        assert result.visited[-3:] == [
            UpdateState.LINKED_PROBE,
            UpdateState.LINKED_DOWNLOAD,
            UpdateState.DONE,
        ]
        assert sink.progress[-3:] == [
            ("Searching twin device for PB632...", 30),
            ("Searching update package for PB631...", 40),
            ("Downloading package for PB631...", 50),
        ]

    @pytest.mark.asyncio
    async def test_installer_failure_is_reported(self, orchestrator, fetcher, installer):
        fetcher.responses[VERSION_URL] = "2.5.5-01"
        fetcher.responses[TEST_PB632] = "exists"
        installer.update_from.return_value = (
            UpdateOutcome.INVALID_PACKAGE,
            PackageErrorKind.NOT_AN_ARCHIVE,
        )

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.INVALID_PACKAGE
        assert result.package_error == PackageErrorKind.NOT_AN_ARCHIVE
        assert result.updated is False

    @pytest.mark.asyncio
    async def test_state_listener_sees_every_state(self, orchestrator, fetcher, states):
        fetcher.responses[VERSION_URL] = "2.5.5-01"

        result = await orchestrator.run()

        assert states == result.visited
        assert states[-1] == UpdateState.DONE

    @pytest.mark.asyncio
    async def test_runs_are_independent(self, orchestrator, fetcher, gate):
        gate.connected = False
        first = await orchestrator.run()

        gate.connected = True
        fetcher.responses[VERSION_URL] = "2.5.5-01"
        fetcher.responses[TEST_PB632] = "exists"
        second = await orchestrator.run()

        assert first.outcome == UpdateOutcome.NO_NETWORK
        assert second.outcome == UpdateOutcome.READY_TO_INSTALL
        assert first is not second
        assert first.visited[-1] == UpdateState.DONE
        assert len(first.visited) == 3

    @pytest.mark.asyncio
    async def test_connectivity_rechecked_before_each_network_step(
        self, orchestrator, fetcher, gate
    ):
        fetcher.responses[VERSION_URL] = "2.5.5-01"
        fetcher.responses[LINK_PB632] = "PB631"

        await orchestrator.run()

        # network_connect + version + primary probe + link + linked probe
        assert gate.calls == 5

    @pytest.mark.asyncio
    async def test_network_lost_before_download(
        self, ota_config, sink, fetcher, device, installer
    ):
        # network_connect, version check, primary probe succeed; download gate fails
        gate = MagicMock()
        gate.ensure_connected = AsyncMock(side_effect=[True, True, True, False])
        fetcher.responses[VERSION_URL] = "2.5.5-01"
        fetcher.responses[TEST_PB632] = "exists"
        orchestrator = build_orchestrator(
            ota_config, sink, fetcher=fetcher, gate=gate, device=device, installer=installer
        )

        result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.NO_NETWORK
        assert result.visited[-2:] == [UpdateState.PRIMARY_DOWNLOAD, UpdateState.DONE]
        assert result.download_url is None
        installer.update_from.assert_not_awaited()
        assert sink.messages[-1][2] == "Couldn't connect to the network!"


def http_client_serving(bodies):
    """httpx.AsyncClient replacement that rejects URLs with control characters."""
    async def get(url):
        if any(ord(ch) < 0x20 for ch in url):
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")
        return MagicMock(status_code=200, text=bodies.get(url, ""))

    client = AsyncMock()
    client.get = get
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


@pytest.mark.unit
class TestServerSuppliedModels:
    """Models containing control characters end the run without raising."""

    @pytest.fixture
    def installer(self):
        installer = MagicMock()
        installer.update_from = AsyncMock(
            return_value=(UpdateOutcome.READY_TO_INSTALL, None)
        )
        return installer

    @pytest.mark.asyncio
    async def test_linked_model_with_trailing_newline_fails(
        self, ota_config, sink, gate, installer
    ):
        bodies = {VERSION_URL: "2.5.5-01", LINK_PB632: "PB631\n"}
        orchestrator = build_orchestrator(
            ota_config, sink, fetcher=HttpFetcher(), gate=gate, installer=installer
        )

        with patch(
            "ota_updater.services.transport.httpx.AsyncClient",
            return_value=http_client_serving(bodies),
        ):
            result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.FAILED
        assert result.device_model == "PB632"
        assert result.target_model == "PB631\n"
        assert UpdateState.LINKED_PROBE in result.visited
        installer.update_from.assert_not_awaited()
        assert sink.messages[-1][2] == "Failed updating!"

    @pytest.mark.asyncio
    async def test_device_model_with_control_character_not_available(
        self, ota_config, sink, gate, installer
    ):
        config = ota_config.model_copy(update={"device_model": "PB\t632"})
        bodies = {VERSION_URL: "2.5.5-01"}
        orchestrator = build_orchestrator(
            config, sink, fetcher=HttpFetcher(), gate=gate, installer=installer
        )

        with patch(
            "ota_updater.services.transport.httpx.AsyncClient",
            return_value=http_client_serving(bodies),
        ):
            result = await orchestrator.run()

        assert result.outcome == UpdateOutcome.NOT_AVAILABLE
        assert result.device_model == "PB\t632"
        installer.update_from.assert_not_awaited()
