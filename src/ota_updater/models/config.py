"""Immutable OTA configuration and its JSON loader."""

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

DEFAULT_PLACEHOLDER = "[DEVICE]"


class ConfigError(Exception):
    """Configuration file exists but cannot be used."""


class OtaConfig(BaseModel):
    """Endpoints, templates and package layout for one device build.

    Passed explicitly to every component at construction.
    """

    model_config = ConfigDict(frozen=True)

    current_version: str = Field(
        "", description="Build identifier of the running application"
    )
    version_url: str = Field(
        "https://ota.example.org/cr3/version.txt",
        description="Endpoint returning the latest published version string",
    )
    link_url_template: str = Field(
        "https://ota.example.org/cr3/link/[DEVICE].txt",
        description="Returns the model a device is linked to, or empty",
    )
    test_url_template: str = Field(
        "https://ota.example.org/cr3/packages/[DEVICE]/exists.txt",
        description="Returns the sentinel if a package exists for the model",
    )
    download_url_template: str = Field(
        "https://ota.example.org/cr3/packages/[DEVICE]/cr3-pb.zip",
        description="Real package download URL",
    )
    device_placeholder: str = Field(DEFAULT_PLACEHOLDER, min_length=1)
    exists_sentinel: str = Field("exists", min_length=1)
    version_max_length: int = Field(
        20, gt=5, description="Longest accepted version or linked model string"
    )
    download_dir: str = Field("./tmp", description="Where packages are downloaded")
    package_name: str = Field("cr3-pb-update.zip", min_length=1)
    binary_path: str = Field(
        "system/bin/cr3-pb.app", description="Installable binary inside the archive"
    )
    device_model: str = Field("", description="Model number reported by this device")
    connectivity_url: str = Field(
        "https://ota.example.org/", description="Reachability check target"
    )
    http_timeout: float = Field(30.0, gt=0)
    device_api_url: str = Field("http://localhost:9080")
    message_title: str = Field("CoolReader")
    log_file: str = Field("./logs/ota_updater.log")
    log_level: str = Field("INFO")

    @model_validator(mode="after")
    def single_placeholder(self) -> "OtaConfig":
        """Each URL template must carry the device placeholder exactly once."""
        for name in ("link_url_template", "test_url_template", "download_url_template"):
            count = getattr(self, name).count(self.device_placeholder)
            if count != 1:
                raise ValueError(
                    f"{name} must contain {self.device_placeholder!r} exactly once "
                    f"(found {count})"
                )
        return self


def load_config(path: Union[str, Path]) -> OtaConfig:
    """Load configuration from a JSON file.

    Args:
        path: JSON file path

    Returns:
        OtaConfig, with defaults when the file does not exist

    Raises:
        ConfigError: If the file is unreadable, not JSON or fails validation
    """
    logger = logging.getLogger("ota_updater.config")
    config_path = Path(path)

    if not config_path.exists():
        logger.warning(f"Config file {config_path} not found, using defaults")
        return OtaConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a JSON object")

    try:
        config = OtaConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}: {e}") from e

    logger.info(
        f"Loaded config: version={config.current_version}, "
        f"device_model={config.device_model or '<unset>'}"
    )
    return config
