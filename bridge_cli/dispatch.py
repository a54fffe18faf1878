"""Routes inbound bridge frames to handlers by their ``type`` tag."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional

from bridge_protocol import BridgeFrame, FrameDecodeError, parse_frame
from bridge_protocol.codec import RawFrame

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None] | None]
MalformedHandler = Callable[[RawFrame, FrameDecodeError], Awaitable[None] | None]


class FrameDispatcher:
    """Decodes frames and invokes the handlers registered for their tag.

    Frames fed through :meth:`feed` are consumed by a single task, so handlers
    observe them in delivery order even when they are coroutines. Frames with
    no registered handler go to ``on_unknown`` only while ``monitor()`` is true.
    """

    def __init__(
        self,
        *,
        on_unknown: Optional[Handler] = None,
        on_malformed: Optional[MalformedHandler] = None,
        monitor: Callable[[], bool] = lambda: False,
    ) -> None:
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._on_unknown = on_unknown
        self._on_malformed = on_malformed
        self._monitor = monitor
        self._queue: asyncio.Queue[RawFrame] = asyncio.Queue()
        self._task: Optional[asyncio.Task[None]] = None

    def register_handler(self, frame_type: str, handler: Handler) -> None:
        """Register a handler for a specific frame type."""
        LOGGER.debug("Registering handler for %s: %s", frame_type, handler)
        self._handlers[frame_type].append(handler)

    def unregister_handler(self, frame_type: str, handler: Handler) -> None:
        handlers = self._handlers.get(frame_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def set_fallbacks(
        self,
        *,
        on_unknown: Optional[Handler] = None,
        on_malformed: Optional[MalformedHandler] = None,
    ) -> None:
        if on_unknown is not None:
            self._on_unknown = on_unknown
        if on_malformed is not None:
            self._on_malformed = on_malformed

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._consume(), name="frame-dispatch")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            LOGGER.debug("Dropped %s undispatched frame(s) on stop", dropped)

    def feed(self, raw: RawFrame) -> None:
        """Queue one inbound payload; never blocks."""

        self._queue.put_nowait(raw)

    async def join(self) -> None:
        """Wait until every fed frame has been dispatched."""

        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            raw = await self._queue.get()
            try:
                await self.dispatch(raw)
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                LOGGER.exception("Frame dispatch failed")
            finally:
                self._queue.task_done()

    async def dispatch(self, raw: RawFrame) -> Optional[BridgeFrame]:
        """Decode and route one payload immediately."""

        try:
            frame = parse_frame(raw)
        except FrameDecodeError as exc:
            LOGGER.info("Malformed frame dropped: %s", exc)
            if self._on_malformed is not None:
                await self._call(self._on_malformed, raw, exc)
            return None

        handlers = list(self._handlers.get(frame.type, []))
        if not handlers:
            if self._monitor() and self._on_unknown is not None:
                await self._call(self._on_unknown, frame)
            else:
                LOGGER.debug("No handler registered for %s", frame.type)
            return frame
        for handler in handlers:
            try:
                await self._call(handler, frame)
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                LOGGER.exception("Handler error for %s", frame.type)
        return frame

    @staticmethod
    async def _call(handler: Callable[..., Any], *args: Any) -> None:
        result = handler(*args)
        if inspect.isawaitable(result):
            await result
