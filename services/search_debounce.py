"""
Debounced search input.
"""
import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from core.config import settings

SearchCallback = Callable[[str], Union[Awaitable[Any], Any]]


class SearchDebouncer:
    """
    Coalesces rapid input into one search.

    on_input() re-arms a timer on every keystroke; the callback runs once
    with the latest text after `delay` seconds without input. submit() skips
    the wait. Must be used from a running event loop.
    """

    def __init__(self, callback: SearchCallback, delay: Optional[float] = None):
        self.callback = callback
        self.delay = settings.search_debounce_ms / 1000 if delay is None else delay
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_input(self, text: str) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._fire_later(text))

    async def submit(self, text: str) -> Any:
        self.cancel()
        return await self._invoke(text)

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None

    async def _fire_later(self, text: str) -> None:
        await asyncio.sleep(self.delay)
        # Only the wait is cancellable; a search that has started runs to completion
        self._task = None
        await self._invoke(text)

    async def _invoke(self, text: str) -> Any:
        result = self.callback(text)
        if inspect.isawaitable(result):
            result = await result
        return result
