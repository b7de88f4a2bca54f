"""Per-request context handed to ``Tokenizer.token()``."""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

from core.errors.exceptions import ContextCancelledError

T = TypeVar("T")

DEADLINE_EXCEEDED = "context deadline exceeded"
CANCELED = "context canceled"


@dataclass
class RequestContext:
    """
    Deadline, cancellation and request data for one token call.

    Attributes:
        provider: Provider name the caller asked for. Tokenizers that serve a
            family of names (see ``accepts_subnames``) parse it.
        deadline: Absolute event-loop time after which the call is abandoned,
            or None for no deadline.
    """

    provider: str | None = None
    deadline: float | None = None
    _cancelled: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @classmethod
    def with_timeout(cls, timeout: float, provider: str | None = None) -> "RequestContext":
        """Create a context whose deadline is ``timeout`` seconds from now."""
        loop = asyncio.get_running_loop()
        return cls(provider=provider, deadline=loop.time() + timeout)

    def cancel(self) -> None:
        """Abandon every call running under this context."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None if there is none."""
        if self.deadline is None:
            return None
        return self.deadline - asyncio.get_running_loop().time()


async def run_in_context(ctx: RequestContext | None, aw: Awaitable[T]) -> T:
    """
    Await ``aw`` bounded by the context's deadline and cancellation.

    The awaitable runs as its own task so that it can be abandoned; when the
    context ends first the task is cancelled and awaited before
    ContextCancelledError is raised, so nothing keeps running in the
    background.
    """
    if ctx is None:
        return await aw

    task = asyncio.ensure_future(aw)
    if ctx.cancelled:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise ContextCancelledError(CANCELED)

    waiter = asyncio.ensure_future(ctx._cancelled.wait())
    try:
        async with asyncio.timeout_at(ctx.deadline):
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
    except TimeoutError as e:
        raise ContextCancelledError(DEADLINE_EXCEEDED, cause=e) from e
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    if task in done:
        return task.result()
    raise ContextCancelledError(CANCELED)


__all__ = [
    "RequestContext",
    "run_in_context",
    "DEADLINE_EXCEEDED",
    "CANCELED",
]
