"""
Ports (Interfaces) for Food Analysis Dependencies.

Defines abstract interfaces for the collaborators the analysis
orchestrator talks to: the generative model client, the image codec
and the credential source.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Optional, Protocol, runtime_checkable

from nutrithali.domain.meal.analysis.models import ModelTier
from nutrithali.domain.meal.analysis.requests import AnalysisRequest
from nutrithali.domain.meal.session.cancellation import CancellationToken


@runtime_checkable
class IAnalysisClient(Protocol):
    """
    Port for the remote generative model.

    Transport only: sends a request to the endpoint of a tier and
    returns the text of the first candidate. No retries.

    This is an interface - implementations may target different
    providers or be replaced by fakes in tests.
    """

    async def send(
        self,
        tier: ModelTier,
        request: AnalysisRequest,
        token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Send one request.

        Args:
            tier: Model tier selecting the endpoint
            request: Payload built by the PromptBuilder
            token: Cancellation token of the owning transition

        Returns:
            Raw text of the first candidate part

        Raises:
            NoCredentialError: If no credential is configured
            InvalidEndpointError: If the URL cannot be built
            TransportError: On network failure
            RemoteRejectedError: On non-success HTTP status
            MalformedEnvelopeError: If the envelope has no candidate text
            RequestCancelledError: If the token was cancelled first
        """
        ...


@runtime_checkable
class IImageCodec(Protocol):
    """
    Port for image encoding.

    Converts raw image bytes (any format Pillow can open) to JPEG.
    """

    def encode_for_transport(self, image: bytes) -> str:
        """
        Encode image as base64 JPEG for an inline request part.

        Raises:
            ValueError: If the bytes are not a readable image
        """
        ...

    def compress_for_storage(self, image: bytes) -> bytes:
        """
        Compress image to a small JPEG for storage.

        Raises:
            ValueError: If the bytes are not a readable image
        """
        ...


@runtime_checkable
class ICredentialSource(Protocol):
    """
    Port for credential lookup.

    Key/value lookup; a missing or blank value means not configured.
    """

    def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None."""
        ...
