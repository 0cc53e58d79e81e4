# store/tasks.py
import asyncio
import logging
from typing import Coroutine

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """投げっぱなしのタスクを保持し、完了を待てるようにする"""

    def __init__(self, name: str):
        self._name = name
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("[SYNC] %s のバックグラウンド処理で例外が発生しました", self._name, exc_info=error)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def settled(self) -> None:
        """実行中のタスク（途中で追加されたものを含む）がすべて終わるまで待つ"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
