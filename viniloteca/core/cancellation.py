"""Cancellation token handed to catalog fetches by whoever owns the request."""
import asyncio


class CancelToken:
    """Set once by the caller (e.g. the screen went away); fetches watching it stop."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
