"""
In-memory index of runs started through the HTTP host.
Lives only as long as the process; nothing is persisted.

Finished runs stay readable for RUN_RETENTION_S seconds, then are evicted
on the next create/get.
"""


import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from lumos.agent.context import RunContext
from lumos.agent.events import EventRecorder
from lumos.core.config import settings
from lumos.core.logging import get_logger

log = get_logger("api.runs")


@dataclass
class RunHandle:
    ctx: RunContext
    recorder: EventRecorder = field(default_factory=EventRecorder)
    task: Optional[asyncio.Task] = None
    result: Optional[str] = None
    finished_at: Optional[float] = None

    @property
    def status(self) -> str:
        return "done" if self.result is not None else "running"


class RunStore:
    def __init__(self, retention_s: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._runs: Dict[str, RunHandle] = {}
        self._retention_s = retention_s
        self._clock = clock

    @property
    def retention_s(self) -> float:
        return settings.RUN_RETENTION_S if self._retention_s is None else self._retention_s

    def __len__(self) -> int:
        return len(self._runs)

    def create(self, ctx: RunContext) -> RunHandle:
        self.evict_expired()
        handle = RunHandle(ctx=ctx)
        ctx.events.subscribe(handle.recorder)
        self._runs[ctx.run_id] = handle
        return handle

    def get(self, run_id: str) -> Optional[RunHandle]:
        self.evict_expired()
        return self._runs.get(run_id)

    def finish(self, handle: RunHandle, result: str) -> None:
        handle.result = result
        handle.finished_at = self._clock()

    def discard(self, run_id: str) -> None:
        self._runs.pop(run_id, None)

    def evict_expired(self) -> int:
        cutoff = self._clock() - self.retention_s
        expired = [
            run_id
            for run_id, h in self._runs.items()
            if h.finished_at is not None and h.finished_at <= cutoff
        ]
        for run_id in expired:
            del self._runs[run_id]
        if expired:
            log.info(f"Evicted {len(expired)} finished run(s)")
        return len(expired)


runs = RunStore()
