import asyncio
from typing import Awaitable, Dict, Optional, TypeVar

from .ocr_engines import OCRSupersededError

T = TypeVar("T")


class OCRTaskSlot:
    """
    Holds at most one in-flight OCR task. Submitting a new one cancels the
    previous task, whose caller then gets OCRSupersededError instead of a
    stale result.
    """

    def __init__(self):
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, coro: Awaitable[T]) -> T:
        previous = self._task
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(coro)
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            # Cancelled by a newer submission rather than by our own caller
            if self._task is not task and task.cancelled():
                raise OCRSupersededError()
            raise
        finally:
            if self._task is task:
                self._task = None


class TaskSlotRegistry:
    """One slot per browser session. Idle slots are dropped after each run."""

    def __init__(self):
        self._slots: Dict[str, OCRTaskSlot] = {}

    def get(self, session_id: Optional[str]) -> OCRTaskSlot:
        if not session_id:
            return OCRTaskSlot()
        slot = self._slots.get(session_id)
        if slot is None:
            slot = self._slots[session_id] = OCRTaskSlot()
        return slot

    def is_busy(self, session_id: str) -> bool:
        slot = self._slots.get(session_id)
        return slot is not None and slot.busy

    def release(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        slot = self._slots.get(session_id)
        if slot is not None and not slot.busy:
            del self._slots[session_id]

    def __len__(self) -> int:
        return len(self._slots)
