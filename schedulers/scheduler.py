# schedulers/scheduler.py
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from typing import Awaitable, Callable


class ReconnectScheduler:
    """APSchedulerによる定期再接続（ログイン中のみ実行）"""

    def __init__(
        self,
        interval_minutes: int,
        reconnect: Callable[[], Awaitable[bool]],
        is_active: Callable[[], bool],
    ):
        self._interval = interval_minutes
        self._reconnect = reconnect
        self._is_active = is_active
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(minutes=self._interval),
            id="reconnect_all",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    async def _run(self) -> bool:
        """定期ジョブ本体"""
        if not self._is_active():
            return False
        return await self._reconnect()

    def start(self):
        """スケジューラ開始"""
        self._scheduler.start()

    def stop(self):
        """スケジューラ停止"""
        self._scheduler.shutdown(wait=False)
