"""
Lifecycle event stream for an external observer.
What it emits:
- planningStart / planningComplete
- functionStart / functionComplete / functionError
- confirmationRequired (gated resource needs a yes/no)

And, the main purpose:
Observability of the plan loop without the loop rendering anything.
Listener failures are logged and dropped; they never reach the loop.
Async listeners are scheduled as tasks, so a slow observer never stalls it.
"""


import asyncio
import inspect
import time
from typing import Any, Callable, Iterable, Optional, Set

from lumos.core.logging import get_logger

log = get_logger("agent.events")

PLANNING_START = "planningStart"
PLANNING_COMPLETE = "planningComplete"
FUNCTION_START = "functionStart"
FUNCTION_COMPLETE = "functionComplete"
FUNCTION_ERROR = "functionError"
CONFIRMATION_REQUIRED = "confirmationRequired"

EventListener = Callable[[str, dict], Any]


class EventEmitter:
    def __init__(self, listeners: Optional[Iterable[EventListener]] = None):
        self._listeners: list[EventListener] = list(listeners or [])
        self._inflight: Set[asyncio.Future] = set()

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    async def emit(self, event_type: str, payload: dict) -> None:
        for listener in list(self._listeners):
            try:
                res = listener(event_type, payload)
                if inspect.isawaitable(res):
                    self._schedule(event_type, res)
            except Exception as e:
                log.warning(f"Could not deliver {event_type} event: {e}")

    def _schedule(self, event_type: str, awaitable) -> None:
        task = asyncio.ensure_future(awaitable)
        self._inflight.add(task)

        def _done(t: asyncio.Future) -> None:
            self._inflight.discard(t)
            if not t.cancelled() and t.exception() is not None:
                log.warning(f"Could not deliver {event_type} event: {t.exception()}")

        task.add_done_callback(_done)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for scheduled async listeners; cancel whatever is left after `timeout`."""
        if not self._inflight:
            return
        pending = list(self._inflight)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for t in still_running:
            t.cancel()


class EventRecorder:
    """Listener that keeps every event in memory (used by the HTTP host and tests)."""

    def __init__(self):
        self.events: list[dict] = []

    def __call__(self, event_type: str, payload: dict) -> None:
        self.events.append({"type": event_type, "data": payload, "timestamp": time.time()})

    def types(self) -> list[str]:
        return [e["type"] for e in self.events]

    def of_type(self, event_type: str) -> list[dict]:
        return [e["data"] for e in self.events if e["type"] == event_type]
