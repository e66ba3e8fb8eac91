"""
Response sanitizer.

Isolates a single JSON object from a generative model's free-form reply.
Models wrap JSON in markdown fences or surround it with prose even when
asked for JSON only; everything here is pure text transformation.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Union

import structlog

from nutrithali.domain.shared.errors import UnparseableResponseError

logger = structlog.get_logger(__name__)

JSON_FENCE = re.compile(r"```json", re.IGNORECASE)
FENCE = "```"


class ResponseSanitizer:
    """
    Sanitizer for model replies.

    Steps, each applied only when the previous one did not already
    yield clean JSON:
    1. Interior of a "```json" fence (case-insensitive) closed by a later "```"
    2. Otherwise interior of the first "```" and the last "```"
    3. Trim whitespace
    4. Drop everything before the first "{"
    5. Drop everything after the last "}"

    Example:
        >>> ResponseSanitizer.clean('Sure! ```json\\n{"a": 1}\\n``` Enjoy')
        '{"a": 1}'
        >>> ResponseSanitizer.extract('{"a": 1} trailing')
        {'a': 1}
    """

    @staticmethod
    def clean(text: str) -> str:
        """
        Apply the textual cleaning steps.

        Args:
            text: Raw model reply

        Returns:
            Cleaned candidate string (not yet validated as JSON)
        """
        candidate = text

        close_at = text.rfind(FENCE)
        json_fence = JSON_FENCE.search(text)
        if json_fence is not None and close_at > json_fence.end():
            candidate = text[json_fence.end() : close_at]
        else:
            open_at = text.find(FENCE)
            if open_at != -1 and close_at > open_at + len(FENCE):
                candidate = text[open_at + len(FENCE) : close_at]

        candidate = candidate.strip()

        first_brace = candidate.find("{")
        if first_brace > 0:
            candidate = candidate[first_brace:]

        last_brace = candidate.rfind("}")
        if last_brace != -1 and last_brace != len(candidate) - 1:
            candidate = candidate[: last_brace + 1]

        return candidate

    @staticmethod
    def to_text(raw: Union[str, bytes, bytearray]) -> str:
        """
        Interpret a reply as text.

        Raises:
            UnparseableResponseError: If bytes are not UTF-8 or input is not text
        """
        if isinstance(raw, str):
            return raw
        if isinstance(raw, (bytes, bytearray)):
            try:
                return bytes(raw).decode("utf-8")
            except UnicodeDecodeError as e:
                raise UnparseableResponseError(
                    "Reply is not valid UTF-8 text", raw=repr(raw)
                ) from e
        raise UnparseableResponseError(
            f"Reply is not text: {type(raw).__name__}", raw=repr(raw)
        )

    @classmethod
    def sanitize(cls, raw: Union[str, bytes, bytearray]) -> str:
        """
        Clean a reply and check it parses as a JSON object.

        Returns:
            Strictly parseable JSON string

        Raises:
            UnparseableResponseError: If no JSON object can be isolated
        """
        cleaned, _ = cls.parse(raw)
        return cleaned

    @classmethod
    def extract(cls, raw: Union[str, bytes, bytearray]) -> Dict[str, Any]:
        """
        Clean a reply and return the decoded JSON object.

        Raises:
            UnparseableResponseError: If no JSON object can be isolated
        """
        _, data = cls.parse(raw)
        return data

    @classmethod
    def parse(cls, raw: Union[str, bytes, bytearray]) -> tuple[str, Dict[str, Any]]:
        """Return the cleaned candidate together with its decoded object."""
        text = cls.to_text(raw)
        cleaned = cls.clean(text)

        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning(
                "Model reply is not valid JSON",
                error=str(e),
                raw=text,
                cleaned=cleaned,
            )
            raise UnparseableResponseError(
                f"Reply is not valid JSON: {e}", raw=text, cleaned=cleaned
            ) from e

        if not isinstance(data, dict):
            logger.warning(
                "Model reply is not a JSON object",
                json_type=type(data).__name__,
                raw=text,
            )
            raise UnparseableResponseError(
                f"Expected a JSON object, got {type(data).__name__}",
                raw=text,
                cleaned=cleaned,
            )

        return cleaned, data
