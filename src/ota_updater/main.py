"""FastAPI application for the e-reader OTA updater."""

import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
import uvicorn

from ota_updater.api.routes import router
from ota_updater.models.config import load_config
from ota_updater.services.state_manager import StateManager
from ota_updater.utils.logging import setup_logger

DEFAULT_CONFIG_PATH = "./config/ota.json"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown hooks.

    Startup:
    - Load configuration (path from OTA_CONFIG)
    - Initialize logger
    - Create the download directory
    - Reset the in-memory status
    """
    config = load_config(os.environ.get("OTA_CONFIG", DEFAULT_CONFIG_PATH))
    logger = setup_logger("ota_updater", config.log_file, level=config.log_level)
    logger.info("OTA updater starting up...")

    Path(config.download_dir).mkdir(parents=True, exist_ok=True)
    logger.debug(f"Ensured download directory exists: {config.download_dir}")

    app.state.config = config
    StateManager().reset()

    logger.info(
        f"OTA updater ready: version={config.current_version}, "
        f"device_model={config.device_model or '<unset>'}"
    )

    yield

    logger.info("OTA updater shutting down...")


app = FastAPI(
    title="E-reader OTA Updater",
    description="Finds, downloads and validates reader application updates",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "ota-updater", "version": "1.0.0"}


def main():
    """Main entry point for running the server."""
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=12315,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
