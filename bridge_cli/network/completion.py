"""Single-fire completion gate for futures settled by racing callbacks."""

from __future__ import annotations

import asyncio
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


def _consume(future: asyncio.Future) -> None:
    # Retrieve the outcome so unawaited rejections are not reported as leaks.
    if not future.cancelled():
        future.exception()


class CompletionGate(Generic[T]):
    """Wraps a future that may be resolved or rejected exactly once.

    Whichever of :meth:`resolve` / :meth:`reject` runs first wins; later calls
    return ``False`` and leave the future untouched.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[T] = loop.create_future()
        self._future.add_done_callback(_consume)
        self._settled = False

    @property
    def future(self) -> asyncio.Future[T]:
        return self._future

    @property
    def settled(self) -> bool:
        return self._settled or self._future.done()

    def resolve(self, value: T) -> bool:
        if self.settled:
            return False
        self._settled = True
        self._future.set_result(value)
        return True

    def reject(self, exc: BaseException) -> bool:
        if self.settled:
            return False
        self._settled = True
        self._future.set_exception(exc)
        return True
