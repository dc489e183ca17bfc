"""Logger setup for the OTA updater: rotating file plus optional console."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ISO_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def parse_level(level: Union[int, str]) -> int:
    """Turn "debug"/"INFO"/20 into a logging level number.

    Raises:
        ValueError: If the name is not a known logging level
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logger(
    name: str = "ota_updater",
    log_file: str = "./logs/ota_updater.log",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 3,
    level: Union[int, str] = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Configure the updater logger.

    Child loggers (``ota_updater.probe`` and friends) propagate here, so
    configuring the root ``ota_updater`` logger once is enough.

    Args:
        name: Logger name
        log_file: Path to log file (parent directories are created)
        max_bytes: Max size before rotation
        backup_count: Number of rotated files to keep
        level: Logging level, as a number or a name
        console: Also log to stderr

    Returns:
        Configured logger instance
    """
    level = parse_level(level)
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Already configured
    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=ISO_DATEFMT)

    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
