"""Global pytest fixtures and configuration."""

import sys
import zipfile
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ota_updater.models.config import OtaConfig  # noqa: E402
from ota_updater.services.state_manager import StateManager  # noqa: E402

BINARY_PATH = "system/bin/cr3-pb.app"


class FakeFetcher:
    """Returns canned bodies per URL and records every request."""

    def __init__(self, responses=None, default=""):
        self.responses = dict(responses or {})
        self.default = default
        self.calls = []

    async def fetch(self, url):
        self.calls.append(url)
        return self.responses.get(url, self.default)


class FakeGate:
    """Connectivity gate with a fixed answer."""

    def __init__(self, connected=True):
        self.connected = connected
        self.calls = 0

    async def ensure_connected(self):
        self.calls += 1
        return self.connected


class RecordingSink:
    """Collects progress updates and messages."""

    def __init__(self):
        self.progress = []
        self.messages = []

    async def report_progress(self, text, percent):
        self.progress.append((text, percent))

    async def report_message(self, icon, title, text, duration_ms):
        self.messages.append((icon, title, text, duration_ms))


@pytest.fixture
def ota_config(tmp_path):
    """Configuration pointing at a temporary download directory."""
    return OtaConfig(
        current_version="2.5.4-20",
        version_url="http://ota.test/version",
        link_url_template="http://ota.test/link/[DEVICE]",
        test_url_template="http://ota.test/pkg/[DEVICE]/exists",
        download_url_template="http://ota.test/pkg/[DEVICE]/cr3.zip",
        exists_sentinel="exists",
        version_max_length=20,
        download_dir=str(tmp_path / "download"),
        package_name="cr3-pb-update.zip",
        binary_path=BINARY_PATH,
        device_model="PB632",
        connectivity_url="http://ota.test/",
    )


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def gate():
    return FakeGate()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def reset_state_manager():
    """Reset the StateManager singleton around a test."""
    StateManager._instance = None
    yield
    StateManager._instance = None


@pytest.fixture
def valid_package(ota_config):
    """Package ZIP holding the installable binary, in the download dir."""
    download_dir = Path(ota_config.download_dir)
    download_dir.mkdir(parents=True, exist_ok=True)
    package_path = download_dir / ota_config.package_name
    with zipfile.ZipFile(package_path, "w") as zf:
        zf.writestr(BINARY_PATH, b"\x7fELF binary")
        zf.writestr("system/share/cr3/readme.txt", "CoolReader update")
    return package_path
