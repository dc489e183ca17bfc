"""Status enums for the OTA update flow."""

from enum import Enum


class UpdateState(str, Enum):
    """Orchestrator states.

    State transitions:
    start → network_connect → version_check → device_model_lookup → primary_probe
                                                                        ↓        ↓
                                                         primary_download    link_resolve
                                                                ↓                ↓
                                                               done         linked_probe
                                                                              ↓       ↓
                                                                 linked_download     done
                                                                        ↓
                                                                       done
    Any state may jump straight to done with a negative outcome.
    """

    START = "start"
    NETWORK_CONNECT = "network_connect"
    VERSION_CHECK = "version_check"
    DEVICE_MODEL_LOOKUP = "device_model_lookup"
    PRIMARY_PROBE = "primary_probe"
    PRIMARY_DOWNLOAD = "primary_download"
    LINK_RESOLVE = "link_resolve"
    LINKED_PROBE = "linked_probe"
    LINKED_DOWNLOAD = "linked_download"
    DONE = "done"


class UpdateOutcome(str, Enum):
    """Terminal outcome of one orchestration run."""

    NO_NETWORK = "no_network"
    UP_TO_DATE = "up_to_date"
    NOT_AVAILABLE = "not_available"
    FAILED = "failed"
    DOWNLOAD_FAILED = "download_failed"
    INVALID_PACKAGE = "invalid_package"
    READY_TO_INSTALL = "ready_to_install"


class PackageErrorKind(str, Enum):
    """Which validation gate rejected a downloaded package."""

    DIRECTORY_UNAVAILABLE = "directory_unavailable"
    FILE_UNAVAILABLE = "file_unavailable"
    NOT_AN_ARCHIVE = "not_an_archive"
    MISSING_BINARY_ENTRY = "missing_binary_entry"


class MessageIcon(str, Enum):
    """Icon shown next to a user-facing message."""

    INFORMATION = "information"
    WARNING = "warning"
    ERROR = "error"
