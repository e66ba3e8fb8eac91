"""
Analysis session states.

Discriminated union of frozen models. The orchestrator is the only
writer; listeners receive these snapshots and match on the type.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from nutrithali.domain.meal.analysis.models import AnalysisResult


class _State(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: str

    @property
    def label(self) -> str:
        """Human readable stage name used in errors and logs."""
        return self.stage.capitalize()

    @property
    def is_busy(self) -> bool:
        """True while a network request owns the session."""
        return False


class IdleState(_State):
    """No analysis in progress."""

    stage: Literal["idle"] = "idle"


class IdentifyingState(_State):
    """Identification request in flight."""

    stage: Literal["identifying"] = "identifying"

    @property
    def is_busy(self) -> bool:
        return True


class IdentifiedState(_State):
    """Dish identified; waiting for the user to confirm or edit."""

    stage: Literal["identified"] = "identified"
    result: AnalysisResult


class AnalysingState(_State):
    """Nutrition or improve request in flight."""

    stage: Literal["analysing"] = "analysing"

    @property
    def is_busy(self) -> bool:
        return True


class ResultState(_State):
    """Full nutrition analysis available."""

    stage: Literal["result"] = "result"
    result: AnalysisResult


class ErrorState(_State):
    """
    Last operation failed.

    Attributes:
        message: Message for the user
        kind: Short failure name (exception class name)
        preserved: Result to return to on retry (save failures only)

    Example:
        >>> state = ErrorState(message="Failed to save meal: disk full",
        ...                    kind="PersistenceFailureError")
        >>> assert state.preserved is None
    """

    stage: Literal["error"] = "error"
    message: str = Field(..., min_length=1)
    kind: str = "DomainError"
    preserved: Optional[ResultState] = None


SessionState = Union[
    IdleState,
    IdentifyingState,
    IdentifiedState,
    AnalysingState,
    ResultState,
    ErrorState,
]


def current_result(state: SessionState) -> Optional[AnalysisResult]:
    """Result held by the state, if any."""
    if isinstance(state, (IdentifiedState, ResultState)):
        return state.result
    return None
