"""Pydantic models for HTTP API responses and device-api reports."""

from typing import Optional
from pydantic import BaseModel, Field

from ota_updater.models.status import (
    MessageIcon,
    PackageErrorKind,
    UpdateOutcome,
    UpdateState,
)


class ProgressData(BaseModel):
    """Progress data nested in response."""

    state: UpdateState = Field(..., description="Current orchestrator state")
    progress: int = Field(..., ge=0, le=100, description="Percentage completion (0-100)")
    message: str = Field(..., description="Human-readable status description")
    outcome: Optional[UpdateOutcome] = Field(
        None, description="Terminal outcome once state == done"
    )
    error: Optional[str] = Field(None, description="Error kind if the run failed")


class ProgressResponse(BaseModel):
    """GET /api/v1.0/progress response.

    Example:
        {
            "code": 200,
            "msg": "success",
            "data": {
                "state": "primary_probe",
                "progress": 20,
                "message": "Searching update package for PB632...",
                "outcome": null,
                "error": null
            }
        }
    """

    code: int = Field(..., description="Application-level status code (200/500)")
    msg: str = Field(..., description="Status message or error description")
    data: ProgressData = Field(..., description="Progress data")


class SuccessResponse(BaseModel):
    """Success response for command endpoints."""

    code: int = Field(default=200, description="Application-level status code (200)")
    msg: str = Field(default="success", description="Success message")
    data: Optional[dict] = Field(None, description="Optional response data")


class ValidateResponse(BaseModel):
    """POST /api/v1.0/validate response."""

    code: int = Field(..., description="200 if the package is valid, 422 otherwise")
    msg: str = Field(..., description="Diagnostic for the failing gate, or success")
    ok: bool = Field(..., description="True if every validation gate passed")
    error: Optional[PackageErrorKind] = Field(None, description="Failing gate")


class ReportPayload(BaseModel):
    """Payload for POST to device-api /api/v1.0/ota/report.

    Sent on every state transition and for every user-facing message.
    """

    progress: Optional[int] = Field(None, ge=0, le=100, description="Percentage completion")
    message: str = Field(..., description="Human-readable status description")
    icon: Optional[MessageIcon] = Field(None, description="Set for user-facing messages")
    title: Optional[str] = Field(None, description="Message box title")
    duration_ms: Optional[int] = Field(None, ge=0, description="Display time")
