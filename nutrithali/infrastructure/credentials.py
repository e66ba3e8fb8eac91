"""
Credential sources.

Adapters for ICredentialSource. Blank values read as not configured.
"""

import os
from typing import Dict, Mapping, Optional


def _normalize(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class EnvCredentialSource:
    """
    Reads credentials from environment variables.

    Example:
        >>> source = EnvCredentialSource()
        >>> api_key = source.get("GEMINI_API_KEY")
    """

    def get(self, key: str) -> Optional[str]:
        return _normalize(os.getenv(key))


class StaticCredentialSource:
    """
    Fixed in-memory credentials (settings screens, tests).

    Example:
        >>> source = StaticCredentialSource({"GEMINI_API_KEY": "abc"})
        >>> source.get("GEMINI_API_KEY")
        'abc'
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return _normalize(self._values.get(key))

    def set(self, key: str, value: Optional[str]) -> None:
        """Store a value; None removes it."""
        if value is None:
            self._values.pop(key, None)
        else:
            self._values[key] = value
