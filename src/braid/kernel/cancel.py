"""Cooperative cancellation shared by every suspension point of a run."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from braid.errors import AgentCancelledError

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation signal for a single agent run.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(agent.invoke("hi", cancel_token=token))
        token.cancel("user pressed ctrl-c")
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AgentCancelledError(self._reason or "Agent run cancelled")


async def cancellable(awaitable: Awaitable[T], token: CancellationToken) -> T:
    """Await ``awaitable`` unless ``token`` fires first.

    When the token wins, the pending work is cancelled and
    :class:`~braid.errors.AgentCancelledError` is raised.
    """
    token.raise_if_cancelled()
    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not work.done():
            work.cancel()
            await asyncio.gather(work, return_exceptions=True)
    if work in done:
        return work.result()
    raise AgentCancelledError(token.reason or "Agent run cancelled")
