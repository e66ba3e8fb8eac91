"""
Meal Analysis Orchestrator.

Owns one analysis session: identification, confirmation, edits,
escalation to the detailed model and saving. Every state change goes
through a single funnel that drops results of superseded requests.

Design Pattern: State Machine + Dependency Injection + Observer
"""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

import structlog

from nutrithali.domain.meal.analysis.decoding import parse_analysis_reply
from nutrithali.domain.meal.analysis.models import AnalysisResult, FoodItem, ModelTier
from nutrithali.domain.meal.analysis.ports import IAnalysisClient
from nutrithali.domain.meal.analysis.prompts import PromptBuilder
from nutrithali.domain.meal.analysis.requests import AnalysisRequest
from nutrithali.domain.meal.persistence.meal_store import IMealStore
from nutrithali.domain.meal.persistence.models import MealCategory, MealEntry
from nutrithali.domain.meal.session.cancellation import (
    CancellationToken,
    RequestCancelledError,
)
from nutrithali.domain.meal.session.states import (
    AnalysingState,
    ErrorState,
    IdentifiedState,
    IdentifyingState,
    IdleState,
    ResultState,
    SessionState,
    current_result,
)
from nutrithali.domain.shared.errors import (
    AnalysisError,
    InvalidStateTransitionError,
    PersistenceFailureError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

Listener = Callable[[SessionState], None]
ResultMapper = Callable[[AnalysisResult], SessionState]


class AnalysisOrchestrator:
    """
    Orchestrates one meal analysis session.

    Responsibilities:
    - Drive the Idle → Identifying → Identified → Analysing → Result flow
    - Cancel superseded requests (most recent request wins)
    - Allow at most one escalation to the detailed model per session
    - Hand confirmed results to the meal store
    - Publish every state change to subscribed listeners

    Dependencies (injected via Ports/Interfaces):
    - client: IAnalysisClient - Remote generative model
    - prompts: PromptBuilder - Request construction
    - store: IMealStore - Saved meals

    Example:
        >>> orchestrator = AnalysisOrchestrator(client, prompts, store)
        >>> unsubscribe = orchestrator.subscribe(print)
        >>> await orchestrator.start_from_image(photo)
        >>> await orchestrator.confirm()
        >>> await orchestrator.save(MealCategory.LUNCH)
    """

    def __init__(
        self,
        client: IAnalysisClient,
        prompts: PromptBuilder,
        store: IMealStore,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            client: Analysis client (transport to the model)
            prompts: Prompt builder
            store: Meal store used by save()
        """
        self.client = client
        self.prompts = prompts
        self.store = store

        self._state: SessionState = IdleState()
        self._image: Optional[bytes] = None
        self._description: Optional[str] = None
        self._improve_used = False
        self._token: Optional[CancellationToken] = None
        self._listeners: List[Listener] = []

    # ═══════════════════════════════════════════════════════════
    # SESSION SNAPSHOT
    # ═══════════════════════════════════════════════════════════

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def image(self) -> Optional[bytes]:
        return self._image

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def improve_used(self) -> bool:
        return self._improve_used

    @property
    def can_improve(self) -> bool:
        """True if improve() would issue a request right now."""
        result = current_result(self._state)
        return (
            result is not None
            and result.can_improve
            and self._image is not None
            and not self._improve_used
        )

    # ═══════════════════════════════════════════════════════════
    # LISTENERS
    # ═══════════════════════════════════════════════════════════

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a state listener.

        Returns:
            Callable that removes the listener (safe to call twice)
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: SessionState) -> None:
        previous = self._state
        self._state = state
        logger.debug("Session state changed", previous=previous.stage, current=state.stage)

        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                # One failing listener must not starve the others
                logger.error(
                    "State listener failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                    exc_info=True,
                )

    # ═══════════════════════════════════════════════════════════
    # TRANSITION FUNNEL
    # ═══════════════════════════════════════════════════════════

    def _issue_token(self) -> CancellationToken:
        if self._token is not None:
            self._token.cancel("superseded")
        self._token = CancellationToken()
        return self._token

    def _begin(self, busy: SessionState) -> CancellationToken:
        token = self._issue_token()
        self._set_state(busy)
        return token

    def _is_current(self, token: CancellationToken) -> bool:
        return token is self._token and not token.is_cancelled

    def _transition(self, token: CancellationToken, state: SessionState) -> bool:
        """Apply state if token is still current; stale outcomes are dropped."""
        if not self._is_current(token):
            logger.debug("Discarding stale outcome", token=repr(token), stage=state.stage)
            return False
        self._token = None
        self._set_state(state)
        return True

    def _clear_session(self, reason: str = "reset") -> None:
        if self._token is not None:
            self._token.cancel(reason)
            self._token = None
        self._image = None
        self._description = None
        self._improve_used = False

    def _require(self, operation: str, *allowed: type) -> None:
        if not isinstance(self._state, allowed):
            raise InvalidStateTransitionError(operation, self._state.label)

    def _held_result(self) -> AnalysisResult:
        result = current_result(self._state)
        if result is None:
            raise InvalidStateTransitionError("use result", self._state.label)
        return result

    def _build(self, factory: Callable[[], AnalysisRequest]) -> AnalysisRequest:
        try:
            return factory()
        except ValueError as e:
            raise ValidationError(f"Image could not be read: {e}") from e

    async def _run(
        self,
        operation: str,
        token: CancellationToken,
        tier: ModelTier,
        request: AnalysisRequest,
        on_success: ResultMapper,
    ) -> SessionState:
        """Issue one request and route its outcome through the funnel."""
        log = logger.bind(operation=operation, tier=tier.value, token=repr(token))
        log.info("Analysis request started")

        try:
            reply = await self.client.send(tier, request, token)
            result = parse_analysis_reply(reply, used_model=tier)
        except RequestCancelledError:
            log.info("Analysis request cancelled")
            return self._state
        except AnalysisError as e:
            log.warning("Analysis request failed", kind=e.kind, error=str(e))
            self._transition(token, ErrorState(message=e.user_message, kind=e.kind))
            return self._state
        except asyncio.CancelledError:
            if self._is_current(token):
                log.info("Caller cancelled analysis, returning to idle")
                self._clear_session()
                self._set_state(IdleState())
            raise

        if self._transition(token, on_success(result)):
            log.info(
                "Analysis request completed",
                dish_name=result.dish_name,
                calories=result.calories,
            )
        return self._state

    # ═══════════════════════════════════════════════════════════
    # NEW SESSION
    # ═══════════════════════════════════════════════════════════

    async def start_from_image(self, image: bytes) -> SessionState:
        """
        Start a new session by identifying the dish in an image.

        Any → Identifying → Identified | Error. Fast tier.

        Raises:
            ValidationError: If the image cannot be read
        """
        request = self._build(lambda: self.prompts.identify(image))

        self._clear_session("superseded")
        self._image = image
        token = self._begin(IdentifyingState())

        return await self._run(
            "identify",
            token,
            ModelTier.FAST,
            request,
            lambda result: IdentifiedState(result=result),
        )

    async def start_from_description(self, description: str) -> SessionState:
        """
        Start a new session from a free-text meal description.

        Any → Analysing → Result | Error. Fast tier.

        Raises:
            ValidationError: If the description is blank
        """
        text = (description or "").strip()
        if not text:
            raise ValidationError("Description cannot be empty")

        request = self.prompts.nutrition_from_description(text)

        self._clear_session("superseded")
        self._description = text
        token = self._begin(AnalysingState())

        return await self._run(
            "describe",
            token,
            ModelTier.FAST,
            request,
            lambda result: ResultState(result=result),
        )

    # ═══════════════════════════════════════════════════════════
    # IDENTIFIED STAGE
    # ═══════════════════════════════════════════════════════════

    async def confirm(self) -> SessionState:
        """
        Confirm the identified dish and fetch full nutrition.

        Identified → Analysing → Result | Error, on the tier of the
        identified result.
        """
        self._require("confirm", IdentifiedState)
        identified = self._held_result()

        request = self.prompts.nutrition_from_name(
            identified.dish_name, identified.estimated_portion_size
        )
        token = self._begin(AnalysingState())

        def to_result(result: AnalysisResult) -> SessionState:
            if not result.food_items and identified.food_items:
                result = result.model_copy(update={"food_items": identified.food_items})
            return ResultState(result=result)

        return await self._run(
            "confirm", token, identified.used_model, request, to_result
        )

    def edit_dish_name(self, name: str) -> SessionState:
        """Replace the identified dish name. No network call."""
        self._require("edit dish name", IdentifiedState)
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Dish name cannot be empty")

        result = self._held_result().with_dish_name(cleaned)
        self._set_state(IdentifiedState(result=result))
        return self._state

    def edit_portions(self, items: List[FoodItem]) -> SessionState:
        """
        Replace the identified portion list. No network call.

        The portion text becomes "{quantity} {name}" joined by ", ".
        """
        self._require("edit portions", IdentifiedState)
        if not items:
            raise ValidationError("Portion list cannot be empty")
        for item in items:
            if not item.name.strip() or not item.quantity.strip():
                raise ValidationError("Every portion needs a name and a quantity")

        result = self._held_result().with_portions(items)
        self._set_state(IdentifiedState(result=result))
        return self._state

    async def recalculate_portions(self) -> SessionState:
        """
        Recompute nutrition for the current portion list.

        Identified | Result → Analysing → Result | Error. Fast tier.
        The held image, if any, is sent as supplementary context.
        """
        self._require("recalculate portions", IdentifiedState, ResultState)
        items = self._held_result().portion_items()
        if not items:
            raise ValidationError("No portions to recalculate")

        image = self._image
        request = self._build(lambda: self.prompts.nutrition_from_portions(items, image=image))
        token = self._begin(AnalysingState())

        def to_result(result: AnalysisResult) -> SessionState:
            if not result.food_items:
                result = result.model_copy(update={"food_items": items})
            return ResultState(result=result)

        return await self._run("recalculate", token, ModelTier.FAST, request, to_result)

    # ═══════════════════════════════════════════════════════════
    # ESCALATION
    # ═══════════════════════════════════════════════════════════

    async def improve(self) -> SessionState:
        """
        Re-run the analysis on the detailed tier.

        Identified | Result → Analysing → the same variant | Error.
        At most once per session; needs a held image and a fast-tier
        result, otherwise a no-op.
        """
        self._require("improve", IdentifiedState, ResultState)
        if not self.can_improve:
            logger.info(
                "Improve skipped",
                improve_used=self._improve_used,
                has_image=self._image is not None,
            )
            return self._state

        prior = self._held_result()
        variant = type(self._state)
        image = self._image
        assert image is not None

        request = self._build(lambda: self.prompts.improve(image, prior))
        self._improve_used = True
        token = self._begin(AnalysingState())

        return await self._run(
            "improve",
            token,
            ModelTier.DETAILED,
            request,
            lambda result: variant(result=result),
        )

    # ═══════════════════════════════════════════════════════════
    # SAVE / RESET / RETRY
    # ═══════════════════════════════════════════════════════════

    async def save(self, category: MealCategory) -> Optional[MealEntry]:
        """
        Save the current result.

        Result → Idle on success. On failure → Error that keeps the
        result so retry() can return to it.

        Returns:
            Stored entry, or None if saving failed or was superseded
        """
        self._require("save", ResultState)
        result_state = self._state
        assert isinstance(result_state, ResultState)
        token = self._issue_token()

        try:
            entry = await self.store.save(self._image, result_state.result, category)
        except PersistenceFailureError as e:
            logger.warning("Saving meal failed", reason=e.reason)
            self._transition(
                token,
                ErrorState(message=e.user_message, kind=e.kind, preserved=result_state),
            )
            return None

        if not self._is_current(token):
            return None

        self._clear_session()
        self._set_state(IdleState())
        logger.info("Meal saved from session", meal_id=str(entry.id), category=category.value)
        return entry

    def reset(self) -> SessionState:
        """Any → Idle. Cancels the in-flight request and releases the image."""
        self._clear_session()
        self._set_state(IdleState())
        return self._state

    def retry(self) -> SessionState:
        """Error → preserved Result (save failures) or Idle."""
        self._require("retry", ErrorState)
        assert isinstance(self._state, ErrorState)

        preserved = self._state.preserved
        if preserved is not None:
            self._set_state(preserved)
            return self._state
        return self.reset()
