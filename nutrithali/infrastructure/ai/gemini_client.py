"""
Gemini API client for food analysis.

Async transport over aiohttp. One POST per call, no retries; every
failure is mapped onto the analysis error taxonomy.
"""

from __future__ import annotations

import asyncio
import json
import time
import unicodedata
from typing import Any, Awaitable, Dict, Optional

import aiohttp
import pydantic
import structlog
from yarl import URL

from nutrithali.domain.meal.analysis.models import ModelTier
from nutrithali.domain.meal.analysis.ports import ICredentialSource
from nutrithali.domain.meal.analysis.requests import AnalysisRequest
from nutrithali.domain.meal.session.cancellation import (
    CancellationToken,
    RequestCancelledError,
)
from nutrithali.domain.shared.errors import (
    InvalidEndpointError,
    MalformedEnvelopeError,
    NoCredentialError,
    RemoteRejectedError,
    TransportError,
)
from nutrithali.infrastructure import config
from nutrithali.infrastructure.ai.gemini_models import GeminiEnvelope

logger = structlog.get_logger(__name__)


def _has_unsafe_characters(value: str) -> bool:
    return any(ch.isspace() or unicodedata.category(ch).startswith("C") for ch in value)


class GeminiClient:
    """
    Async Gemini client implementing IAnalysisClient.

    Features:
    - Credential checked before any network activity
    - Per-tier model selection (fast / detailed)
    - Total request timeout surfaced as TransportError
    - Cooperative cancellation through CancellationToken
    - Context manager for session cleanup

    Example:
        >>> async with GeminiClient(credentials=EnvCredentialSource()) as client:
        ...     text = await client.send(ModelTier.FAST, request)
    """

    def __init__(
        self,
        credentials: ICredentialSource,
        base_url: Optional[str] = None,
        fast_model: Optional[str] = None,
        detailed_model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Initialize Gemini client.

        Args:
            credentials: Source of GEMINI_API_KEY
            base_url: API base URL (reads GEMINI_BASE_URL if None)
            fast_model: Fast tier model id (reads GEMINI_FAST_MODEL if None)
            detailed_model: Detailed tier model id (reads GEMINI_DETAILED_MODEL if None)
            timeout_seconds: Total request timeout (reads GEMINI_TIMEOUT_SECONDS if None)
            session: Optional pre-configured session (for testing)
        """
        self.credentials = credentials
        self.base_url = base_url if base_url is not None else config.get_gemini_base_url()
        self.models: Dict[ModelTier, str] = {
            ModelTier.FAST: (
                fast_model if fast_model is not None else config.get_gemini_model(ModelTier.FAST)
            ),
            ModelTier.DETAILED: (
                detailed_model
                if detailed_model is not None
                else config.get_gemini_model(ModelTier.DETAILED)
            ),
        }
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else config.get_gemini_timeout_seconds()
        )
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> GeminiClient:
        """Async context manager entry."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    # ═══════════════════════════════════════════════════════════
    # ENDPOINT
    # ═══════════════════════════════════════════════════════════

    def _api_key(self) -> str:
        api_key = self.credentials.get(config.API_KEY_NAME)
        if api_key is None or not api_key.strip():
            raise NoCredentialError(config.API_KEY_NAME)
        return api_key.strip()

    def build_url(self, tier: ModelTier, api_key: str) -> URL:
        """
        Build the generateContent URL for a tier.

        Raises:
            InvalidEndpointError: On a bad base URL, empty model id or unsafe key
        """
        try:
            base = URL(self.base_url.rstrip("/"))
        except (TypeError, ValueError) as e:
            raise InvalidEndpointError(f"Invalid base URL: {self.base_url!r}") from e

        if not base.scheme or not base.host:
            raise InvalidEndpointError(f"Base URL needs scheme and host: {self.base_url!r}")

        model = (self.models.get(tier) or "").strip()
        if not model:
            raise InvalidEndpointError(f"No model configured for tier '{tier.value}'")

        if _has_unsafe_characters(api_key):
            raise InvalidEndpointError("Credential contains whitespace or control characters")

        return URL(f"{base}/models/{model}:generateContent").with_query(key=api_key)

    # ═══════════════════════════════════════════════════════════
    # SEND
    # ═══════════════════════════════════════════════════════════

    async def send(
        self,
        tier: ModelTier,
        request: AnalysisRequest,
        token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Send one request and return the first candidate text.

        Raises:
            NoCredentialError: If GEMINI_API_KEY is not configured
            InvalidEndpointError: If the URL cannot be built
            TransportError: On network failure or timeout
            RemoteRejectedError: On non-2xx status
            MalformedEnvelopeError: If the envelope has no candidate text
            RequestCancelledError: If the token is cancelled first
        """
        api_key = self._api_key()
        url = self.build_url(tier, api_key)

        if self._session is None:
            raise TransportError("Client not initialized, use async with")

        if token is not None:
            token.raise_if_cancelled()

        call = self._post(tier, url, request.to_request_body(), request.intent.value)
        if token is None:
            return await call
        return await self._race(call, token)

    async def _race(self, call: Awaitable[str], token: CancellationToken) -> str:
        request_task = asyncio.ensure_future(call)
        cancel_task = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait(
                {request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (request_task, cancel_task):
                if not task.done():
                    task.cancel()

        if token.is_cancelled:
            if request_task.done() and not request_task.cancelled():
                # consume the outcome so it is not reported as unretrieved
                request_task.exception()
            logger.info("Gemini request cancelled", token=repr(token))
            raise RequestCancelledError(token.reason or "cancelled")

        return request_task.result()

    async def _post(
        self, tier: ModelTier, url: URL, body: Dict[str, Any], intent: str
    ) -> str:
        assert self._session is not None
        model = self.models[tier]
        started = time.perf_counter()

        try:
            async with self._session.post(
                url,
                json=body,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                status = response.status
                raw = await response.read()
        except asyncio.TimeoutError as e:
            logger.warning(
                "Gemini request timed out",
                tier=tier.value,
                model=model,
                timeout_seconds=self.timeout_seconds,
            )
            raise TransportError(f"Request timed out after {self.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            logger.warning("Gemini transport error", tier=tier.value, model=model, error=str(e))
            raise TransportError(f"Network error: {e}") from e

        # proxies can answer with non-UTF-8 error pages
        text = raw.decode("utf-8", errors="replace")

        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Gemini request completed",
            tier=tier.value,
            model=model,
            intent=intent,
            status=status,
            latency_ms=latency_ms,
        )

        if not 200 <= status < 300:
            raise RemoteRejectedError(status, text)

        return self._first_candidate_text(text)

    @staticmethod
    def _first_candidate_text(body: str) -> str:
        try:
            payload = json.loads(body)
            envelope = GeminiEnvelope.model_validate(payload)
        except (json.JSONDecodeError, pydantic.ValidationError) as e:
            raise MalformedEnvelopeError("Response body is not a Gemini envelope", body=body) from e

        text = envelope.first_text()
        if text is None:
            reason = envelope.finish_reason()
            message = "Envelope has no candidate text"
            if reason:
                message = f"{message} (finishReason={reason})"
            raise MalformedEnvelopeError(message, body=body)
        return text
