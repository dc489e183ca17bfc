"""API route handlers for OTA updater endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse

from ota_updater.api.models import ProgressResponse, SuccessResponse, ValidateResponse
from ota_updater.models.config import OtaConfig
from ota_updater.models.result import UpdateResult
from ota_updater.models.status import UpdateOutcome, UpdateState
from ota_updater.services.orchestrator import build_orchestrator
from ota_updater.services.package_validator import PackageValidator
from ota_updater.services.reporter import CompositeSink, ReportService, StateProgressSink
from ota_updater.services.state_manager import StateManager

router = APIRouter(prefix="/api/v1.0")

# Outcomes reported with code 500 by GET /progress
FAILED_OUTCOMES = {
    UpdateOutcome.NO_NETWORK,
    UpdateOutcome.FAILED,
    UpdateOutcome.DOWNLOAD_FAILED,
    UpdateOutcome.INVALID_PACKAGE,
}


def get_config(request: Request) -> OtaConfig:
    """Configuration loaded by the application lifespan."""
    return request.app.state.config


@router.get("/progress", response_model=ProgressResponse)
async def get_progress():
    """GET /api/v1.0/progress - Query the current update run.

    Response format (failed run):
        {
            "code": 500,
            "msg": "Update failed: invalid_package",
            "data": {
                "state": "done",
                "progress": 100,
                "message": "Invalid update package!",
                "outcome": "invalid_package",
                "error": "missing_binary_entry"
            }
        }
    """
    status = StateManager().get_status()

    if status.outcome in FAILED_OUTCOMES:
        return ProgressResponse(
            code=500, msg=f"Update failed: {status.outcome.value}", data=status
        )
    return ProgressResponse(code=200, msg="success", data=status)


@router.post("/check", response_model=SuccessResponse)
async def post_check(
    background_tasks: BackgroundTasks, config: OtaConfig = Depends(get_config)
):
    """POST /api/v1.0/check - Start an update run in the background.

    Returns code 409 if a run is already in progress.
    """
    state_manager = StateManager()

    if state_manager.is_running():
        current_status = state_manager.get_status()
        return JSONResponse(
            status_code=200,
            content={
                "code": 409,
                "msg": f"Update already in progress: {current_status.state.value}",
                "state": current_status.state.value,
                "progress": current_status.progress,
            },
        )

    state_manager.try_start()
    background_tasks.add_task(_check_workflow, config)

    return JSONResponse(
        status_code=200,
        content={"code": 200, "msg": "success", "data": None},
    )


@router.get("/result")
async def get_result():
    """GET /api/v1.0/result - Full report of the last finished run."""
    result = StateManager().get_last_result()
    if result is None:
        return JSONResponse(
            status_code=200, content={"code": 404, "msg": "No update run finished yet"}
        )
    return {"code": 200, "msg": "success", "data": result.model_dump(mode="json")}


@router.post("/validate", response_model=ValidateResponse)
async def post_validate(config: OtaConfig = Depends(get_config)):
    """POST /api/v1.0/validate - Validate the package in the download directory."""
    validator = PackageValidator(config, ReportService(config.device_api_url))
    check = await validator.got_valid_package()

    if check:
        return ValidateResponse(code=200, msg="success", ok=True)
    return ValidateResponse(code=422, msg=check.message, ok=False, error=check.error)


async def _check_workflow(config: OtaConfig) -> None:
    """Background task running one orchestration."""
    logger = logging.getLogger("ota_updater.api")
    state_manager = StateManager()
    sink = CompositeSink(
        StateProgressSink(state_manager), ReportService(config.device_api_url)
    )
    orchestrator = build_orchestrator(config, sink, on_state=state_manager.enter_state)

    try:
        result = await orchestrator.run()
    except Exception as e:
        logger.error(f"Update run crashed: {e}", exc_info=True)
        result = UpdateResult(outcome=UpdateOutcome.FAILED, state=UpdateState.DONE)
        state_manager.finish(result, message=f"Update failed: {e}")
        return

    state_manager.finish(result)
