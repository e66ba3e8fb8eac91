"""
Analysis request payloads.

Provider-neutral description of one generative call: the intent, the
instruction text and an optional inline image. The Gemini wire body
is produced by to_request_body().
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


JPEG_MIME_TYPE = "image/jpeg"
JSON_MIME_TYPE = "application/json"


class AnalysisIntent(str, Enum):
    """What a request asks the model to do."""

    IDENTIFY = "identify"
    NUTRITION_FROM_NAME = "nutrition_from_name"
    NUTRITION_FROM_DESCRIPTION = "nutrition_from_description"
    NUTRITION_FROM_PORTIONS = "nutrition_from_portions"
    IMPROVE = "improve"


class InlineImage(BaseModel):
    """Base64-encoded image sent inline with the prompt."""

    model_config = ConfigDict(frozen=True)

    data: str = Field(..., min_length=1, description="Base64 JPEG bytes")
    mime_type: str = Field(JPEG_MIME_TYPE, description="Image MIME type")


class AnalysisRequest(BaseModel):
    """
    One request to the generative model.

    Example:
        >>> request = AnalysisRequest(
        ...     intent=AnalysisIntent.NUTRITION_FROM_NAME,
        ...     prompt="Compute nutrition for Dal",
        ... )
        >>> body = request.to_request_body()
        >>> body["generationConfig"]["response_mime_type"]
        'application/json'
    """

    model_config = ConfigDict(frozen=True)

    intent: AnalysisIntent
    prompt: str = Field(..., min_length=1)
    image: Optional[InlineImage] = None

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def to_request_body(self) -> Dict[str, Any]:
        """Gemini generateContent body."""
        parts: List[Dict[str, Any]] = [{"text": self.prompt}]
        if self.image is not None:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": self.image.mime_type,
                        "data": self.image.data,
                    }
                }
            )
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {"response_mime_type": JSON_MIME_TYPE},
        }
