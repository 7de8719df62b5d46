"""
Per-run table of pending resource confirmations.

A capability that needs an explicit "yes" before first use of a resource
awaits request(); the host resolves it with confirm()/decline(). Keyed by
resource descriptor so one run can wait on several resources at once.
"""


import asyncio
from typing import Dict

from lumos.core.errors import ConfirmationDeclined, ConfirmationTimeout
from lumos.core.logging import get_logger

log = get_logger("agent.confirmations")


class ConfirmationTable:
    def __init__(self):
        self._pending: Dict[str, asyncio.Future] = {}

    def pending(self) -> list[str]:
        return [r for r, fut in self._pending.items() if not fut.done()]

    def is_pending(self, resource: str) -> bool:
        fut = self._pending.get(resource)
        return fut is not None and not fut.done()

    async def request(self, resource: str, timeout: float) -> None:
        """Wait for the host to confirm `resource`. Raises on decline or timeout."""
        fut = self._pending.get(resource)
        if fut is None or fut.done():
            fut = asyncio.get_running_loop().create_future()
            self._pending[resource] = fut

        log.info(f"Awaiting confirmation for {resource} (timeout {timeout:g}s)")
        try:
            accepted = await asyncio.wait_for(asyncio.shield(fut), timeout)
        except asyncio.TimeoutError:
            if not fut.done():
                fut.cancel()
            raise ConfirmationTimeout(resource, timeout)
        finally:
            if self._pending.get(resource) is fut and fut.done():
                del self._pending[resource]

        if not accepted:
            raise ConfirmationDeclined(resource)

    def resolve(self, resource: str, accept: bool) -> bool:
        fut = self._pending.get(resource)
        if fut is None or fut.done():
            return False
        fut.set_result(bool(accept))
        return True

    def confirm(self, resource: str) -> bool:
        return self.resolve(resource, True)

    def decline(self, resource: str) -> bool:
        return self.resolve(resource, False)
