"""Result models returned by the validator and the orchestrator."""

from typing import Optional
from pydantic import BaseModel, Field

from ota_updater.models.status import PackageErrorKind, UpdateOutcome, UpdateState


class PackageCheck(BaseModel):
    """Outcome of validating a downloaded package.

    Evaluates truthy only when every gate passed, so callers interested
    in the yes/no answer can use it directly in a condition.
    """

    ok: bool = Field(..., description="True if all validation gates passed")
    error: Optional[PackageErrorKind] = Field(
        None, description="Gate that rejected the package"
    )
    message: str = Field("", description="User-facing diagnostic")

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def passed(cls) -> "PackageCheck":
        return cls(ok=True)

    @classmethod
    def failed(cls, error: PackageErrorKind, message: str) -> "PackageCheck":
        return cls(ok=False, error=error, message=message)


class UpdateResult(BaseModel):
    """Terminal report of one orchestration run."""

    outcome: Optional[UpdateOutcome] = Field(None, description="Terminal outcome")
    state: UpdateState = Field(UpdateState.START, description="Last state reached")
    visited: list[UpdateState] = Field(
        default_factory=list, description="States entered, in order"
    )
    device_model: Optional[str] = Field(None, description="Model of this device")
    target_model: Optional[str] = Field(
        None, description="Model whose package was chosen (own or linked)"
    )
    download_url: Optional[str] = Field(None, description="Real download URL used")
    package_error: Optional[PackageErrorKind] = Field(
        None, description="Validation gate failure, if any"
    )

    @property
    def updated(self) -> bool:
        """True if a validated package is staged for installation."""
        return self.outcome == UpdateOutcome.READY_TO_INSTALL
