# store/resource_store.py
"""エンティティ種別ごとのリソースストア

ミラー（サーバーのコレクションのクライアント側コピー）を所有し、作成・更新・削除を
発行する。変更が成功したら部分的なパッチは行わず、常にコレクション全体を再取得する。
"""
import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from pydantic.alias_generators import to_camel

from schemas.decode import DecodeFailure
from services.errors import TransportFailure, extract_error_message
from store.availability import AvailabilityTracker
from store.events import NotificationEvent, NotificationKind, Operation
from store.state import (
    Capability,
    ConsoleState,
    EntityKind,
    clear_mirror,
    find_record,
    get_mirror,
    is_loading,
    set_loading,
    set_mirror,
)
from store.tasks import BackgroundTasks

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name, item.get(to_camel(name)))
    return getattr(item, name, None)


def describe_employee(item: Any) -> str:
    name = _field(item, "full_name")
    if not name:
        name = " ".join(p for p in (_field(item, "first_name"), _field(item, "last_name")) if p)
    return name or ""


def describe_department(item: Any) -> str:
    name = _field(item, "name")
    code = _field(item, "code")
    if name and code:
        return f"{name}（{code}）"
    return name or code or ""


def describe_attendance(item: Any) -> str:
    who = _field(item, "employee_name") or _field(item, "employee_id")
    day = _field(item, "date")
    if hasattr(day, "strftime"):
        day = day.strftime("%Y-%m-%d")
    return " ".join(str(p) for p in (who, day) if p) or ""


class ResourceStore(Generic[T]):
    """1種類のエンティティのミラーと、その機能グループの到達可能性を管理する"""

    def __init__(
        self,
        state: ConsoleState,
        kind: EntityKind,
        capability: Capability,
        label: str,
        api,
        sink,
        health_check: Callable[[], Awaitable[None]],
        normalizer: Callable[[T], T],
        describe: Callable[[Any], str],
    ):
        self._state = state
        self.kind = kind
        self.label = label
        self._api = api
        self._sink = sink
        self._normalize = normalizer
        self._describe = describe
        self.tracker = AvailabilityTracker(
            state,
            capability,
            label,
            sink,
            health_check,
            on_unavailable=lambda: clear_mirror(state, kind),
            on_restored=self._refresh_after_restore,
        )
        self._tasks = BackgroundTasks(label)
        self._requested_generation = 0
        self._applied_generation = 0
        self._active_loads = 0
        self._suppress_restore_refresh = False

    @property
    def mirror(self) -> list[T]:
        return get_mirror(self._state, self.kind)

    @property
    def is_loading(self) -> bool:
        return is_loading(self._state, self.kind)

    @property
    def is_available(self) -> bool:
        return self.tracker.is_available

    async def settled(self) -> None:
        """このストアが起動したバックグラウンド処理（再取得・再プローブ）の完了を待つ"""
        await self._tasks.settled()

    # --- 取得 ---

    async def load(self) -> bool:
        """到達可能性を確認し、コレクション全体を取得してミラーを置き換える

        取得中の例外は通知に変換してFalseを返す（呼び出し側には送出しない）。
        """
        epoch = self._state.epoch
        self._requested_generation += 1
        generation = self._requested_generation
        self._active_loads += 1
        set_loading(self._state, self.kind, True)
        try:
            if not await self.tracker.probe():
                return False

            try:
                records = [self._normalize(r) for r in await self._api.get_all()]
            except (TransportFailure, DecodeFailure) as e:
                if epoch != self._state.epoch:
                    return False
                self._sink.handle(
                    NotificationEvent(
                        NotificationKind.SYNC_FAILED, self.label, message=extract_error_message(e)
                    )
                )
                self._tasks.spawn(self.tracker.probe())
                return False

            if epoch != self._state.epoch:
                logger.debug("[SYNC] %s: ログアウト後に届いた結果を破棄します", self.label)
                return False
            if generation < self._applied_generation:
                # 後から要求した取得の結果がすでに反映されている
                logger.debug("[SYNC] %s: 古い取得結果（世代 %d）を破棄します", self.label, generation)
                return True

            self._applied_generation = generation
            set_mirror(self._state, self.kind, records)
            self.tracker.report_outcome(True)
            return True
        finally:
            self._active_loads -= 1
            if self._active_loads == 0:
                set_loading(self._state, self.kind, False)

    def _refresh_after_restore(self) -> None:
        if self._suppress_restore_refresh or self._active_loads:
            return
        self._tasks.spawn(self.load())

    def _report_available(self) -> None:
        self._suppress_restore_refresh = True
        try:
            self.tracker.report_outcome(True)
        finally:
            self._suppress_restore_refresh = False

    # --- 変更 ---

    async def _mutate(
        self,
        operation: Operation,
        detail: str,
        call: Callable[[], Awaitable[Any]],
        fallback_record: Any = None,
    ) -> Optional[T]:
        epoch = self._state.epoch
        handle = self._sink.handle(
            NotificationEvent(NotificationKind.PROGRESS, self.label, operation, message=detail)
        )
        try:
            result = await call()
        except DecodeFailure as e:
            self._sink.dismiss(handle)
            self._sink.handle(
                NotificationEvent(
                    NotificationKind.FAILURE, self.label, operation, message=extract_error_message(e)
                )
            )
            raise
        except TransportFailure as e:
            self._sink.dismiss(handle)
            self._sink.handle(
                NotificationEvent(
                    NotificationKind.FAILURE, self.label, operation, message=extract_error_message(e)
                )
            )
            if epoch == self._state.epoch:
                self._tasks.spawn(self.tracker.probe())
            return None

        self._sink.dismiss(handle)
        record = self._normalize(result) if result is not None else fallback_record
        self._sink.handle(
            NotificationEvent(
                NotificationKind.SUCCESS,
                self.label,
                operation,
                message=self._describe(record),
                record=record,
            )
        )
        if epoch == self._state.epoch:
            self._report_available()
            self._tasks.spawn(self.load())
        return record

    async def create(self, payload: Any) -> Optional[T]:
        """作成して正規化済みのレコードを返す（通信失敗時はNone）"""
        return await self._mutate(
            Operation.CREATE, self._describe(payload), lambda: self._api.create(payload)
        )

    async def update(self, record_id: int, payload: Any) -> Optional[T]:
        """更新して正規化済みのレコードを返す（通信失敗時はNone）"""
        detail = self._describe(payload) or f"#{record_id}"
        return await self._mutate(
            Operation.UPDATE, detail, lambda: self._api.update(record_id, payload)
        )

    async def delete(self, record_id: int) -> bool:
        """ミラーに存在するレコードだけを削除する（存在しないidは何もしない）"""
        record = find_record(self._state, self.kind, record_id)
        if record is None:
            logger.debug("[SYNC] %s: id=%s はミラーにないため削除しません", self.label, record_id)
            return False

        removed = await self._mutate(
            Operation.DELETE,
            self._describe(record),
            lambda: self._api.remove(record_id),
            fallback_record=record,
        )
        return removed is not None

    def reset(self) -> None:
        """ミラーと到達可能性を既定値に戻す（ログアウト時）"""
        clear_mirror(self._state, self.kind)
        set_loading(self._state, self.kind, False)
        self.tracker.reset()


class AttendanceStore(ResourceStore):
    """勤怠ストア（ミラーを変更しない検索系の操作を持つ）"""

    async def _query(self, context: str, call: Callable[[], Awaitable[list]]) -> list:
        epoch = self._state.epoch
        try:
            records = await call()
        except (TransportFailure, DecodeFailure) as e:
            if epoch != self._state.epoch:
                logger.debug("[SYNC] %s.%s: ログアウト後に届いた失敗を破棄します", self.label, context)
                return []
            logger.warning("[SYNC] %s.%s に失敗しました: %s", self.label, context, e)
            self._sink.handle(
                NotificationEvent(
                    NotificationKind.SYNC_FAILED, self.label, message=extract_error_message(e)
                )
            )
            self._tasks.spawn(self.tracker.probe())
            return []
        if epoch != self._state.epoch:
            logger.debug("[SYNC] %s.%s: ログアウト後に届いた結果を破棄します", self.label, context)
            return []
        self._report_available()
        return [self._normalize(r) for r in records]

    async def for_employee(self, employee_id: int) -> list:
        return await self._query(
            "for_employee", lambda: self._api.get_by_employee(employee_id)
        )

    async def for_employee_on(self, employee_id: int, day: str) -> list:
        return await self._query(
            "for_employee_on", lambda: self._api.get_by_employee_and_date(employee_id, day)
        )

    async def between(self, start_date: str, end_date: str) -> list:
        return await self._query(
            "between", lambda: self._api.get_by_date_range(start_date, end_date)
        )
