"""One-way progress stream from a clone session to its caller."""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from site_cloner.domain.events import TERMINAL_EVENT_TYPES, ProgressStreamEvent

logger = logging.getLogger(__name__)

_END = object()


@dataclass
class ProgressChannel:
    """Ordered, unbuffered-for-late-joiners event emitter.

    ``emit`` never blocks. Once a terminal event has been emitted, or the
    caller has disconnected, further events are dropped.
    """

    _queue: asyncio.Queue = field(default_factory=asyncio.Queue, init=False)
    _terminated: bool = field(default=False, init=False)
    _disconnected: bool = field(default=False, init=False)

    @property
    def is_open(self) -> bool:
        return not (self._terminated or self._disconnected)

    @property
    def terminated(self) -> bool:
        return self._terminated

    def emit(self, event: ProgressStreamEvent) -> bool:
        """Push an event to the caller; return whether it was accepted."""
        if not self.is_open:
            logger.debug("Dropping %s event on closed channel", event.type)
            return False
        self._queue.put_nowait(event)
        if event.type in TERMINAL_EVENT_TYPES:
            self._terminated = True
            self._queue.put_nowait(_END)
        return True

    def disconnect(self) -> None:
        """Mark the caller as gone; later events are dropped."""
        if self._disconnected:
            return
        self._disconnected = True
        if not self._terminated:
            self._queue.put_nowait(_END)

    async def events(self) -> AsyncIterator[ProgressStreamEvent]:
        """Yield events in emission order until the stream ends."""
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item
