# store/session.py
import asyncio
import logging
from typing import Optional

from store.events import NotificationEvent, NotificationKind
from store.state import AuthMode, ConsoleState, advance_epoch
from store.tasks import BackgroundTasks

logger = logging.getLogger(__name__)

REMINDER_LABEL = "お知らせ"


class SessionController:
    """認証状態（Anonymous ⇄ Authenticated）と同期コアの起動・停止

    認証済みになると全ストアの初回読み込みとファイル転送のプローブを並行で開始し、
    ログアウトすると直前の読み込みの成否に関わらずすべてを初期化する。
    """

    def __init__(
        self,
        state: ConsoleState,
        stores: list,
        file_transfer,
        leave_requests,
        sink,
        missing_features: Optional[list[str]] = None,
    ):
        self._state = state
        self._stores = stores
        self._file_transfer = file_transfer
        self._leave_requests = leave_requests
        self._sink = sink
        self._missing_features = list(missing_features or [])
        self._reminder_shown = False
        self._tasks = BackgroundTasks("session")

    @property
    def is_authenticated(self) -> bool:
        return self._state.session.is_authenticated

    def open_auth(self, mode: AuthMode) -> None:
        self._state.session.pending_auth_mode = AuthMode(mode)

    def close_auth(self) -> None:
        self._state.session.pending_auth_mode = AuthMode.NONE

    def login(self, access_token: str, user: Optional[dict] = None) -> None:
        session = self._state.session
        session.access_token = access_token
        session.user = user
        session.pending_auth_mode = AuthMode.NONE
        if session.is_authenticated:
            return

        session.is_authenticated = True
        logger.info("[SYNC] ログインしました。初回読み込みを開始します")
        self._tasks.spawn(self._initial_load())
        self._remind_missing_features()

    async def _initial_load(self) -> None:
        await asyncio.gather(
            *(store.load() for store in self._stores),
            self._file_transfer.probe(),
        )

    def _remind_missing_features(self) -> None:
        if self._reminder_shown or not self._missing_features:
            return
        self._sink.handle(
            NotificationEvent(
                NotificationKind.REMINDER,
                REMINDER_LABEL,
                message=f"{'・'.join(self._missing_features)} はまだ利用できません",
            )
        )
        self._reminder_shown = True

    def logout(self) -> None:
        session = self._state.session
        session.is_authenticated = False
        session.access_token = None
        session.user = None
        session.pending_auth_mode = AuthMode.NONE

        # 実行中の読み込みの結果を無効にしてから初期化する
        advance_epoch(self._state)
        for store in self._stores:
            store.reset()
        self._file_transfer.reset()
        self._leave_requests.reset()
        self._reminder_shown = False
        logger.info("[SYNC] ログアウトしました。ミラーを初期化しました")

    async def settled(self) -> None:
        """初回読み込みと、各ストアが起動した後続処理の完了を待つ"""
        await self._tasks.settled()
        for store in self._stores:
            await store.settled()
