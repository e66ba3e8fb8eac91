"""
Cooperative cancellation.

One token per network-issuing transition. The orchestrator cancels the
previous token when a newer request starts; whoever holds a token checks
it right after every suspension point before acting on a result.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Optional


_sequence = itertools.count(1)


class RequestCancelledError(Exception):
    """Raised by raise_if_cancelled(). Never surfaced as an Error state."""

    pass


class CancellationToken:
    """
    Cancellation token for one in-flight request.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel("superseded")
        >>> assert token.is_cancelled
    """

    def __init__(self) -> None:
        self.sequence = next(_sequence)
        self._cancelled = False
        self._reason: Optional[str] = None
        self._event: Optional[asyncio.Event] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Mark cancelled. Idempotent; the first reason wins."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelledError(self._reason or "cancelled")

    async def wait(self) -> None:
        """Block until cancelled."""
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()

    def __repr__(self) -> str:
        state = f"cancelled:{self._reason}" if self._cancelled else "active"
        return f"CancellationToken(#{self.sequence}, {state})"
