"""
Domain exceptions.

Typed exceptions for explicit error handling.
Every failure the analysis pipeline can surface has its own class, and
every class knows the message a user should see for it.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    @property
    def user_message(self) -> str:
        """Message suitable for showing in the Error state."""
        return str(self) or "Something went wrong. Please try again."


# ═══════════════════════════════════════════════════════════
# ANALYSIS PIPELINE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class AnalysisError(DomainError):
    """
    Base exception for the food analysis pipeline.

    Covers credential lookup, transport, envelope parsing and
    decoding of the model reply.
    """

    @property
    def kind(self) -> str:
        """Short, stable name of the failure (class name)."""
        return type(self).__name__


class NoCredentialError(AnalysisError):
    """
    No API credential configured.

    Raised before any network activity is attempted.

    Example:
        >>> raise NoCredentialError()
    """

    def __init__(self, key_name: str = "GEMINI_API_KEY") -> None:
        self.key_name = key_name
        super().__init__(f"Credential '{key_name}' is not configured")

    @property
    def user_message(self) -> str:
        return "API Key is missing. Please add your Gemini API key in Settings."


class InvalidEndpointError(AnalysisError):
    """
    Endpoint URL could not be built.

    Raised when:
    - Base URL has no scheme or host
    - Model identifier is empty
    - Credential contains characters that cannot go in a URL
    """

    @property
    def user_message(self) -> str:
        return "Invalid API configuration. Please check your API key in Settings."


class TransportError(AnalysisError):
    """
    Network-layer failure.

    Raised when:
    - Connection refused / DNS failure
    - Connection reset mid-request
    - Client-level timeout elapsed
    """

    @property
    def user_message(self) -> str:
        return "Could not reach the analysis service. Check your connection and try again."


class RemoteRejectedError(AnalysisError):
    """
    Remote endpoint answered with a non-success HTTP status.

    The raw response body is kept verbatim for diagnostics.

    Example:
        >>> err = RemoteRejectedError(429, "rate limited")
        >>> assert "rate limited" in err.user_message
    """

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Remote rejected request with HTTP {status}: {body}")

    @property
    def user_message(self) -> str:
        return f"API Error: {self.body}"


class MalformedEnvelopeError(AnalysisError):
    """
    Provider envelope had no candidate text.

    Raised when the body is not JSON or has no
    candidates[0].content.parts[0].text.
    """

    def __init__(self, message: str, body: Optional[str] = None) -> None:
        self.body = body
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return "Received invalid response from the server."


class UnparseableResponseError(AnalysisError):
    """
    Model reply could not be turned into the expected JSON shape.

    Both the raw reply and the cleaned candidate are kept so the
    failure can be inspected after the fact.
    """

    def __init__(self, message: str, raw: str, cleaned: Optional[str] = None) -> None:
        self.raw = raw
        self.cleaned = cleaned
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return "The AI couldn't analyse this meal. Try a clearer photo with better lighting."


class MissingFieldError(AnalysisError):
    """
    Required field absent from a decoded object.

    Example:
        >>> raise MissingFieldError("name")
    """

    def __init__(self, field: str, raw: Optional[str] = None) -> None:
        self.field = field
        self.raw = raw
        super().__init__(f"Missing required field '{field}'")

    @property
    def user_message(self) -> str:
        return f"The AI response was incomplete (missing '{self.field}'). Please try again."


# ═══════════════════════════════════════════════════════════
# PERSISTENCE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class PersistenceFailureError(DomainError):
    """
    Meal store operation failed.

    Raised when:
    - Saving a meal fails
    - Image compression for storage fails
    - Deleting or updating an unknown meal
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def user_message(self) -> str:
        return f"Failed to save meal: {self.reason}"


# ═══════════════════════════════════════════════════════════
# CALLER EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Raised when:
    - Edited dish name is blank
    - Edited portion list is empty or has a blank quantity

    Example:
        >>> raise ValidationError("Dish name cannot be empty")
    """

    pass


class InvalidStateTransitionError(DomainError):
    """
    Operation not allowed in the current session state.

    Example:
        >>> raise InvalidStateTransitionError("confirm", "Idle")
    """

    def __init__(self, operation: str, stage: str) -> None:
        self.operation = operation
        self.stage = stage
        super().__init__(f"Cannot {operation} while session is {stage}")
