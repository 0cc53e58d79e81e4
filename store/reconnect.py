# store/reconnect.py
import asyncio
import logging

from store.events import NotificationEvent, NotificationKind, Operation

logger = logging.getLogger(__name__)

RECONNECT_LABEL = "API"


class ReconnectOrchestrator:
    """全機能グループのプローブと再取得を並行実行する"""

    def __init__(self, stores: list, file_transfer, sink):
        self._stores = stores
        self._file_transfer = file_transfer
        self._sink = sink
        self._in_flight = False

    @property
    def is_reconnecting(self) -> bool:
        return self._in_flight

    async def reconnect_all(self) -> bool:
        """すべて成功した場合だけTrue。実行中に呼ばれた場合は何もせずFalse"""
        if self._in_flight:
            logger.info("[SYNC] 再接続はすでに実行中です")
            return False

        self._in_flight = True
        handle = self._sink.handle(
            NotificationEvent(NotificationKind.PROGRESS, RECONNECT_LABEL, Operation.RECONNECT)
        )
        try:
            results = await asyncio.gather(
                *(store.load() for store in self._stores),
                self._file_transfer.probe(),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    logger.error("[SYNC] 再接続中に例外が発生しました", exc_info=result)
            ok = all(result is True for result in results)

            self._sink.dismiss(handle)
            kind = NotificationKind.SUCCESS if ok else NotificationKind.FAILURE
            self._sink.handle(NotificationEvent(kind, RECONNECT_LABEL, Operation.RECONNECT))
            return ok
        finally:
            self._in_flight = False
