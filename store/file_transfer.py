# store/file_transfer.py
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional

from services.errors import TransportFailure, UnavailableCapability, extract_error_message
from store.availability import AvailabilityTracker
from store.events import NotificationEvent, NotificationKind, Operation
from store.state import (
    Availability,
    Capability,
    ConsoleState,
    EntityKind,
    TransferDirection,
    clear_transfer_flags,
    is_transferring,
    set_transfer_flag,
)

logger = logging.getLogger(__name__)

FILE_TRANSFER_LABEL = "インポート / エクスポート"

KIND_LABELS = {
    EntityKind.EMPLOYEES: "従業員",
    EntityKind.DEPARTMENTS: "部署",
    EntityKind.ATTENDANCES: "勤怠",
}


def _now() -> datetime:
    """テスト時にモック可能な現在時刻取得"""
    return datetime.now()


class FileTransferTracker:
    """一括インポート・エクスポートの進行状況を管理する

    到達可能性は全エンティティのインポート・エクスポートで1つを共有する。
    転送に失敗した場合は再プローブし、Unavailableのままなら次の転送は
    サーバーを呼ぶ前に再プローブを行う。
    """

    def __init__(
        self,
        state: ConsoleState,
        api,
        sink,
        health_check: Callable[[], Awaitable[None]],
        stores: dict,
        export_dir: Path = Path("exports"),
    ):
        self._state = state
        self._api = api
        self._sink = sink
        self._stores = stores
        self._export_dir = Path(export_dir)
        self.tracker = AvailabilityTracker(
            state, Capability.FILE_TRANSFER, FILE_TRANSFER_LABEL, sink, health_check
        )

    @property
    def is_available(self) -> bool:
        return self.tracker.is_available

    def is_importing(self, kind: EntityKind) -> bool:
        return is_transferring(self._state, kind, TransferDirection.IMPORT)

    def is_exporting(self, kind: EntityKind) -> bool:
        return is_transferring(self._state, kind, TransferDirection.EXPORT)

    async def probe(self) -> bool:
        return await self.tracker.probe()

    def _check_kind(self, kind: EntityKind) -> None:
        if kind not in KIND_LABELS or kind not in self._stores:
            raise ValueError(f"{kind.value} はインポート・エクスポートの対象外です")

    async def _ensure_available(self) -> None:
        if self.tracker.status == Availability.UNAVAILABLE and not await self.tracker.probe():
            raise UnavailableCapability(FILE_TRANSFER_LABEL)

    def _fail(self, handle, operation: Operation, error: Exception) -> None:
        self._sink.dismiss(handle)
        self._sink.handle(
            NotificationEvent(
                NotificationKind.FAILURE,
                FILE_TRANSFER_LABEL,
                operation,
                message=extract_error_message(error),
            )
        )

    def _discard_if_logged_out(self, epoch: int, handle, operation: Operation) -> bool:
        if epoch == self._state.epoch:
            return False
        logger.debug("[SYNC] %s: ログアウト後に完了した%sの結果を破棄します", FILE_TRANSFER_LABEL, operation.value)
        self._sink.dismiss(handle)
        return True

    async def import_file(self, kind: EntityKind, file_path: Path) -> bool:
        """ファイルをインポートし、成功したら対応するストアを再読み込みする"""
        self._check_kind(kind)
        epoch = self._state.epoch
        set_transfer_flag(self._state, kind, TransferDirection.IMPORT, True)
        handle = self._sink.handle(
            NotificationEvent(
                NotificationKind.PROGRESS, FILE_TRANSFER_LABEL, Operation.IMPORT, message=KIND_LABELS[kind]
            )
        )
        try:
            try:
                await self._ensure_available()
                await self._api.import_file(kind.value, Path(file_path))
            except UnavailableCapability as e:
                self._fail(handle, Operation.IMPORT, e)
                return False
            except TransportFailure as e:
                if self._discard_if_logged_out(epoch, handle, Operation.IMPORT):
                    return False
                self._fail(handle, Operation.IMPORT, e)
                await self.tracker.probe()
                return False
            except OSError as e:
                logger.error("[SYNC] インポートするファイルを読み込めません: %s", e)
                self._fail(handle, Operation.IMPORT, e)
                return False

            if self._discard_if_logged_out(epoch, handle, Operation.IMPORT):
                return False
            self._sink.dismiss(handle)
            self._sink.handle(
                NotificationEvent(
                    NotificationKind.SUCCESS, FILE_TRANSFER_LABEL, Operation.IMPORT, message=KIND_LABELS[kind]
                )
            )
            self.tracker.report_outcome(True)
            await self._stores[kind].load()
            return True
        finally:
            set_transfer_flag(self._state, kind, TransferDirection.IMPORT, False)

    async def export_file(self, kind: EntityKind) -> Optional[Path]:
        """エクスポートしたバイナリをファイルに保存し、そのパスを返す"""
        self._check_kind(kind)
        epoch = self._state.epoch
        set_transfer_flag(self._state, kind, TransferDirection.EXPORT, True)
        handle = self._sink.handle(
            NotificationEvent(
                NotificationKind.PROGRESS, FILE_TRANSFER_LABEL, Operation.EXPORT, message=KIND_LABELS[kind]
            )
        )
        try:
            try:
                await self._ensure_available()
                content = await self._api.export_file(kind.value)
            except UnavailableCapability as e:
                self._fail(handle, Operation.EXPORT, e)
                return None
            except TransportFailure as e:
                if self._discard_if_logged_out(epoch, handle, Operation.EXPORT):
                    return None
                self._fail(handle, Operation.EXPORT, e)
                await self.tracker.probe()
                return None

            if self._discard_if_logged_out(epoch, handle, Operation.EXPORT):
                return None
            self.tracker.report_outcome(True)
            target = self._export_dir / f"{kind.value}-{_now().strftime('%Y%m%dT%H%M%S')}.xlsx"
            try:
                await asyncio.to_thread(_save, target, content)
            except OSError as e:
                logger.error("[SYNC] エクスポートを保存できません: %s", e)
                self._fail(handle, Operation.EXPORT, e)
                return None

            self._sink.dismiss(handle)
            self._sink.handle(
                NotificationEvent(
                    NotificationKind.SUCCESS, FILE_TRANSFER_LABEL, Operation.EXPORT, message=str(target)
                )
            )
            return target
        finally:
            set_transfer_flag(self._state, kind, TransferDirection.EXPORT, False)

    def reset(self) -> None:
        self.tracker.reset()
        clear_transfer_flags(self._state)


def _save(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
