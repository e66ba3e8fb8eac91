"""
Gemini generateContent response envelope.

Only the fields needed to reach the first candidate's text are modelled;
everything else in the envelope is ignored.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GeminiPart(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = None


class GeminiContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parts: List[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Optional[GeminiContent] = None
    finish_reason: Optional[str] = Field(None, alias="finishReason")


class GeminiEnvelope(BaseModel):
    """
    Top-level response body.

    Example:
        >>> envelope = GeminiEnvelope.model_validate(
        ...     {"candidates": [{"content": {"parts": [{"text": "{}"}]}}]}
        ... )
        >>> envelope.first_text()
        '{}'
    """

    model_config = ConfigDict(extra="ignore")

    candidates: List[GeminiCandidate] = Field(default_factory=list)

    def first_text(self) -> Optional[str]:
        """Text of candidates[0].content.parts[0], or None."""
        if not self.candidates:
            return None
        content = self.candidates[0].content
        if content is None or not content.parts:
            return None
        return content.parts[0].text

    def finish_reason(self) -> Optional[str]:
        """finishReason of the first candidate, e.g. SAFETY for blocked replies."""
        if not self.candidates:
            return None
        return self.candidates[0].finish_reason
