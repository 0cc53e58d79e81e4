# store/availability.py
import logging
from typing import Awaitable, Callable, Optional

from services.errors import TransportFailure
from store.events import NotificationEvent, NotificationKind
from store.state import Availability, Capability, ConsoleState, get_availability, set_availability

logger = logging.getLogger(__name__)


class AvailabilityTracker:
    """機能グループ1つ分の到達可能性（Unknown / Available / Unavailable）

    Available と Unavailable の間を遷移したときだけ通知を1回出す。
    同じ状態の再確認では通知もミラーの変更も行わない。
    """

    def __init__(
        self,
        state: ConsoleState,
        capability: Capability,
        label: str,
        sink,
        health_check: Callable[[], Awaitable[None]],
        on_unavailable: Optional[Callable[[], None]] = None,
        on_restored: Optional[Callable[[], None]] = None,
    ):
        self._state = state
        self.capability = capability
        self.label = label
        self._sink = sink
        self._health_check = health_check
        self._on_unavailable = on_unavailable
        self._on_restored = on_restored

    @property
    def status(self) -> Availability:
        return get_availability(self._state, self.capability)

    @property
    def is_available(self) -> bool:
        return self.status == Availability.AVAILABLE

    def report_outcome(self, available: bool) -> bool:
        """プローブや実処理の結果を反映する。状態が変わった場合はTrueを返す"""
        previous = self.status
        current = Availability.AVAILABLE if available else Availability.UNAVAILABLE
        if previous == current:
            return False

        set_availability(self._state, self.capability, current)
        logger.info("[SYNC] %s: %s -> %s", self.label, previous.value, current.value)

        if current == Availability.UNAVAILABLE:
            if self._on_unavailable:
                self._on_unavailable()
            self._sink.handle(NotificationEvent(NotificationKind.UNAVAILABLE, self.label))
        elif previous == Availability.UNAVAILABLE:
            self._sink.handle(NotificationEvent(NotificationKind.RESTORED, self.label))
            if self._on_restored:
                self._on_restored()
        return True

    async def probe(self) -> bool:
        """ヘルスチェックを実行して状態を更新する"""
        epoch = self._state.epoch
        try:
            await self._health_check()
            available = True
        except TransportFailure as e:
            logger.warning("[SYNC] %s のヘルスチェックに失敗しました: %s", self.label, e)
            available = False

        # ログアウト後に届いた結果は反映しない
        if epoch == self._state.epoch:
            self.report_outcome(available)
        return available

    def reset(self) -> None:
        set_availability(self._state, self.capability, Availability.UNKNOWN)
