from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Optional

from storefront.config import settings

logger = logging.getLogger(__name__)

IDLE = "idle"
SHOWING = "showing"
SETTLING = "settling"


@dataclass
class Toast:
    text: str
    timeout: float


class ToastQueue:
    """
    Shows one notification at a time.

    ``show(text)`` puts a message on screen and returns a handle that is later
    passed to ``hide(handle)``. Between two messages the queue waits ``settle``
    seconds.
    """

    def __init__(
        self,
        show: Callable[[str], Awaitable[Any]],
        hide: Callable[[Any], Awaitable[None]],
        timeout: Optional[float] = None,
        settle: Optional[float] = None,
    ) -> None:
        self._show = show
        self._hide = hide
        self.timeout = settings.toast_timeout if timeout is None else timeout
        self.settle = settings.toast_settle if settle is None else settle
        self.state = IDLE
        self._queue: Deque[Toast] = deque()
        self._task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._queue)

    def push(self, text: str, timeout: Optional[float] = None) -> None:
        self._queue.append(Toast(text, self.timeout if timeout is None else timeout))
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._drain())

    async def join(self) -> None:
        if self._task is not None:
            await self._task

    async def _drain(self) -> None:
        try:
            while self._queue:
                toast = self._queue.popleft()
                self.state = SHOWING
                handle = None
                try:
                    handle = await self._show(toast.text)
                except Exception:
                    logger.exception("toast show failed")
                await asyncio.sleep(toast.timeout)
                try:
                    await self._hide(handle)
                except Exception:
                    logger.exception("toast hide failed")
                self.state = SETTLING
                await asyncio.sleep(self.settle)
        finally:
            self.state = IDLE
