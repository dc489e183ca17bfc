"""Downloaded package validation.

A package is accepted only if four gates pass in order:

1. the download directory can be opened,
2. the package file inside it can be opened for reading,
3. the file is a readable archive,
4. the archive contains the installable binary entry.

The first failing gate ends the check. Every handle opened along the
way is closed before returning, whichever gate failed.
"""

import logging
import os
import zipfile
from contextlib import ExitStack
from pathlib import Path
from typing import IO, Optional, Protocol

from ota_updater.models.config import OtaConfig
from ota_updater.models.result import PackageCheck
from ota_updater.models.status import MessageIcon, PackageErrorKind
from ota_updater.services.reporter import ProgressSink

GATE_MESSAGES = {
    PackageErrorKind.DIRECTORY_UNAVAILABLE: "Couldn't open download dir!",
    PackageErrorKind.FILE_UNAVAILABLE: "Couldn't open downloaded file!",
    PackageErrorKind.NOT_AN_ARCHIVE: "Downloaded file is not an archive!",
    PackageErrorKind.MISSING_BINARY_ENTRY: "Invalid update package!",
}


class ArchiveStorage(Protocol):
    """Filesystem and archive access; every method returns None on failure."""

    def open_directory(self, path: str) -> Optional[Path]: ...

    def open_file(self, directory: Path, name: str) -> Optional[IO[bytes]]: ...

    def open_archive(self, stream: IO[bytes]) -> Optional[zipfile.ZipFile]: ...

    def open_entry(self, archive: zipfile.ZipFile, entry_path: str) -> Optional[IO[bytes]]: ...


class ZipArchiveStorage:
    """Local filesystem + ZIP implementation of ArchiveStorage."""

    def open_directory(self, path: str) -> Optional[Path]:
        # Path("") would silently mean the working directory
        if not path:
            return None
        directory = Path(path)
        if directory.is_dir() and os.access(directory, os.R_OK | os.X_OK):
            return directory
        return None

    def open_file(self, directory: Path, name: str) -> Optional[IO[bytes]]:
        try:
            return open(directory / name, "rb")
        except OSError:
            return None

    def open_archive(self, stream: IO[bytes]) -> Optional[zipfile.ZipFile]:
        try:
            return zipfile.ZipFile(stream, "r")
        except (zipfile.BadZipFile, OSError):
            return None

    def open_entry(self, archive: zipfile.ZipFile, entry_path: str) -> Optional[IO[bytes]]:
        try:
            return archive.open(entry_path, "r")
        except (KeyError, zipfile.BadZipFile, RuntimeError, OSError):
            # KeyError: no such entry; RuntimeError: encrypted entry
            return None


class PackageValidator:
    """Confirms a downloaded package holds the installable binary."""

    def __init__(
        self,
        config: OtaConfig,
        sink: ProgressSink,
        storage: Optional[ArchiveStorage] = None,
    ):
        self.logger = logging.getLogger("ota_updater.validator")
        self.config = config
        self.sink = sink
        self.storage = storage or ZipArchiveStorage()

    async def got_valid_package(
        self,
        download_dir: Optional[str] = None,
        package_name: Optional[str] = None,
        binary_path: Optional[str] = None,
    ) -> PackageCheck:
        """Run the four validation gates.

        Args:
            download_dir: Directory holding the package (default from config)
            package_name: Package filename (default from config)
            binary_path: Entry path expected inside the archive (default from config)

        Returns:
            PackageCheck; on failure it names the gate that rejected the package
        """
        if download_dir is None:
            download_dir = self.config.download_dir
        if package_name is None:
            package_name = self.config.package_name
        if binary_path is None:
            binary_path = self.config.binary_path

        with ExitStack() as stack:
            directory = self.storage.open_directory(download_dir)
            if directory is None:
                return await self._fail(PackageErrorKind.DIRECTORY_UNAVAILABLE, download_dir)

            stream = self.storage.open_file(directory, package_name)
            if stream is None:
                return await self._fail(PackageErrorKind.FILE_UNAVAILABLE, package_name)
            stack.callback(stream.close)

            archive = self.storage.open_archive(stream)
            if archive is None:
                return await self._fail(PackageErrorKind.NOT_AN_ARCHIVE, package_name)
            stack.callback(archive.close)

            binary = self.storage.open_entry(archive, binary_path)
            if binary is None:
                return await self._fail(PackageErrorKind.MISSING_BINARY_ENTRY, binary_path)
            stack.callback(binary.close)

        self.logger.info(f"Package {package_name} is valid ({binary_path} present)")
        return PackageCheck.passed()

    async def _fail(self, kind: PackageErrorKind, subject: str) -> PackageCheck:
        message = GATE_MESSAGES[kind]
        self.logger.error(f"Package validation failed at {kind.value}: {subject}")
        await self.sink.report_message(
            MessageIcon.ERROR, self.config.message_title, message, 2000
        )
        return PackageCheck.failed(kind, message)
