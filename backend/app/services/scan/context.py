"""Per-job execution context threaded through every pipeline stage."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional

from .errors import ScanCancelledError


def _never_cancelled() -> bool:
    return False


@dataclass
class PipelineContext:
    """
    ``is_cancelled`` and ``progress_callback`` are plain blocking callables
    (the worker backs them with database transactions), so they run in a
    worker thread. Calls are serialized so progress lands in emission order.
    """

    job_id: str
    is_cancelled: Callable[[], bool] = field(default=_never_cancelled)
    progress_callback: Optional[Callable[[int, str], None]] = None
    _callback_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False, compare=False)

    async def raise_if_cancelled(self) -> None:
        async with self._callback_lock:
            cancelled = await asyncio.to_thread(self.is_cancelled)
        if cancelled:
            raise ScanCancelledError(self.job_id)

    async def report_progress(self, percent: Optional[int], message: str = "") -> None:
        if percent is None or not self.progress_callback:
            return
        async with self._callback_lock:
            await asyncio.to_thread(self.progress_callback, percent, message)
