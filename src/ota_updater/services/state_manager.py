"""In-memory status shared between the orchestrator and the HTTP API."""

import logging
from typing import Optional

from ota_updater.api.models import ProgressData
from ota_updater.models.result import UpdateResult
from ota_updater.models.status import UpdateOutcome, UpdateState


class StateManager:
    """Singleton status holder for OTA runs.

    Only in-memory state: nothing survives a restart except the
    downloaded package itself.
    """

    _instance: Optional["StateManager"] = None

    def __new__(cls):
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize state manager (only once due to singleton)."""
        if self._initialized:
            return

        self.logger = logging.getLogger("ota_updater.state_manager")

        self._current_state: UpdateState = UpdateState.START
        self._current_progress: int = 0
        self._current_message: str = "Updater ready"
        self._current_outcome: Optional[UpdateOutcome] = None
        self._current_error: Optional[str] = None
        self._running = False
        self._last_result: Optional[UpdateResult] = None

        self._initialized = True
        self.logger.info("StateManager initialized")

    def get_status(self) -> ProgressData:
        """Get current status for GET /progress endpoint."""
        return ProgressData(
            state=self._current_state,
            progress=self._current_progress,
            message=self._current_message,
            outcome=self._current_outcome,
            error=self._current_error,
        )

    def update_status(
        self,
        state: UpdateState,
        progress: int,
        message: str,
        outcome: Optional[UpdateOutcome] = None,
        error: Optional[str] = None,
    ) -> None:
        """Update in-memory status state.

        Args:
            state: Current orchestrator state
            progress: Percentage completion (0-100)
            message: Human-readable description
            outcome: Terminal outcome, once known
            error: Error kind for failed runs
        """
        self._current_state = state
        self._current_progress = progress
        self._current_message = message
        self._current_outcome = outcome
        self._current_error = error
        self.logger.debug(
            f"Status updated: state={state.value}, progress={progress}%, message={message}"
        )

    def update_progress(self, progress: int, message: str) -> None:
        """Update percentage and text, keeping the current state."""
        self.update_status(self._current_state, progress, message)

    def enter_state(self, state: UpdateState) -> None:
        self._current_state = state

    def is_running(self) -> bool:
        return self._running

    def try_start(self) -> bool:
        """Mark a run as started.

        Returns:
            False if a run is already in progress
        """
        if self._running:
            return False
        self._running = True
        self.update_status(UpdateState.START, 0, "Update check started")
        return True

    def finish(self, result: UpdateResult, message: Optional[str] = None) -> None:
        """Record the terminal result of a run and release the run slot."""
        error = result.package_error.value if result.package_error else None
        self.update_status(
            state=UpdateState.DONE,
            progress=100,
            message=message or self._current_message,
            outcome=result.outcome,
            error=error,
        )
        self._last_result = result
        self._running = False
        self.logger.info(f"Run finished: outcome={result.outcome.value if result.outcome else None}")

    def get_last_result(self) -> Optional[UpdateResult]:
        return self._last_result

    def reset(self) -> None:
        """Reset to the initial state."""
        self._current_state = UpdateState.START
        self._current_progress = 0
        self._current_message = "Updater ready"
        self._current_outcome = None
        self._current_error = None
        self._running = False
        self._last_result = None
        self.logger.info("State reset")
