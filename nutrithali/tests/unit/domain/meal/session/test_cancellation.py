"""
Unit tests for CancellationToken.
"""

import asyncio

import pytest

from nutrithali.domain.meal.session.cancellation import (
    CancellationToken,
    RequestCancelledError,
)


class TestCancellationToken:
    def test_new_token_is_active(self) -> None:
        token = CancellationToken()

        assert not token.is_cancelled
        assert token.reason is None
        token.raise_if_cancelled()

    def test_tokens_are_ordered(self) -> None:
        first, second = CancellationToken(), CancellationToken()

        assert second.sequence > first.sequence

    def test_cancel_is_idempotent_and_keeps_first_reason(self) -> None:
        token = CancellationToken()

        token.cancel("superseded")
        token.cancel("reset")

        assert token.is_cancelled
        assert token.reason == "superseded"
        assert "cancelled:superseded" in repr(token)

    def test_raise_if_cancelled(self) -> None:
        token = CancellationToken()
        token.cancel("reset")

        with pytest.raises(RequestCancelledError, match="reset"):
            token.raise_if_cancelled()

    async def test_wait_returns_after_cancel(self) -> None:
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()

        await asyncio.wait_for(waiter, timeout=1)

    async def test_wait_on_already_cancelled_token(self) -> None:
        token = CancellationToken()
        token.cancel()

        await asyncio.wait_for(token.wait(), timeout=1)
