import itertools
import logging
import sys
from typing import Any, Optional, Protocol

from store.events import NotificationEvent, NotificationKind, Operation

logger = logging.getLogger(__name__)

K = NotificationKind
O = Operation

MESSAGES = {
    (K.PROGRESS, O.CREATE): "⏳ {feature}：作成中です（{detail}）",
    (K.SUCCESS, O.CREATE): "✅ {feature}：作成しました（{detail}）",
    (K.FAILURE, O.CREATE): "❌ {feature}：作成に失敗しました（エラー: {detail}）",
    (K.PROGRESS, O.UPDATE): "⏳ {feature}：更新中です（{detail}）",
    (K.SUCCESS, O.UPDATE): "✅ {feature}：更新しました（{detail}）",
    (K.FAILURE, O.UPDATE): "❌ {feature}：更新に失敗しました（エラー: {detail}）",
    (K.PROGRESS, O.DELETE): "⏳ {feature}：削除中です（{detail}）",
    (K.SUCCESS, O.DELETE): "🗑 {feature}：削除しました（{detail}）",
    (K.FAILURE, O.DELETE): "❌ {feature}：削除に失敗しました（エラー: {detail}）",
    (K.PROGRESS, O.IMPORT): "⏳ {detail}のインポート中です",
    (K.SUCCESS, O.IMPORT): "✅ {detail}のインポートが完了しました",
    (K.FAILURE, O.IMPORT): "❌ インポートに失敗しました（エラー: {detail}）",
    (K.PROGRESS, O.EXPORT): "⏳ {detail}のエクスポート中です",
    (K.SUCCESS, O.EXPORT): "✅ エクスポートの準備ができました（{detail}）",
    (K.FAILURE, O.EXPORT): "❌ エクスポートに失敗しました（エラー: {detail}）",
    (K.PROGRESS, O.RECONNECT): "⏳ APIへの再接続を試みています",
    (K.SUCCESS, O.RECONNECT): "✅ APIへの再接続に成功しました",
    (K.FAILURE, O.RECONNECT): "❌ 一部のAPIに再接続できませんでした",
    (K.SUCCESS, O.LEAVE_REQUEST): "✅ 休暇申請を受け付けました（{detail}）",
    (K.SYNC_FAILED, None): "❌ {feature}：同期できませんでした（エラー: {detail}）",
    (K.UNAVAILABLE, None): "⚠️ 機能が利用できません：{feature}",
    (K.RESTORED, None): "✅ 機能が復旧しました：{feature}",
    (K.REMINDER, None): "ℹ️ {detail}",
}

_ERROR_KINDS = {K.FAILURE, K.SYNC_FAILED, K.UNAVAILABLE}


def render_message(event: NotificationEvent) -> str:
    """イベントを利用者向けの文言に変換する"""
    template = MESSAGES.get((event.kind, event.operation)) or MESSAGES.get((event.kind, None))
    if template is None:
        template = "{feature}：{detail}"
    return template.format(feature=event.feature, detail=event.message or "")


class NotificationSink(Protocol):
    def handle(self, event: NotificationEvent) -> Any:
        ...

    def dismiss(self, handle: Any) -> None:
        ...


class ConsoleNotifier:
    """コンソール出力による通知（フォールバック用）"""

    def __init__(self):
        self._ids = itertools.count(1)

    def send(self, message: str) -> bool:
        print(f"[HR通知] {message}", file=sys.stdout)
        return True

    def send_error(self, error: str) -> bool:
        print(f"[HRエラー] {error}", file=sys.stderr)
        return True

    def handle(self, event: NotificationEvent) -> int:
        message = render_message(event)
        if event.kind in _ERROR_KINDS:
            self.send_error(message)
        else:
            self.send(message)
        return next(self._ids)

    def dismiss(self, handle: Any) -> None:
        # コンソールでは出力済みの行を取り消せない
        return None


class SlackNotifier:
    """Slack APIによる通知サービス"""

    def __init__(self, token: str, channel: str):
        self._channel = channel
        self._client = None
        self._fallback = ConsoleNotifier()

        if token:
            from slack_sdk import WebClient

            self._client = WebClient(token=token)

    def send(self, message: str) -> Optional[str]:
        """メッセージ送信（成功時はメッセージのtsを返す）"""
        if self._client is None:
            self._fallback.send(message)
            return None

        try:
            response = self._client.chat_postMessage(channel=self._channel, text=message)
        except Exception as e:
            logger.warning("[Slack] 送信に失敗しました: %s", e)
            return None
        return response.get("ts")

    def send_error(self, error: str) -> Optional[str]:
        """エラー通知"""
        if self._client is None:
            self._fallback.send_error(error)
            return None
        return self.send(f"❌ {error}")

    def handle(self, event: NotificationEvent) -> Any:
        if self._client is None:
            return self._fallback.handle(event)
        return self.send(render_message(event))

    def dismiss(self, handle: Any) -> None:
        """進行中メッセージを取り消す"""
        if self._client is None or not handle:
            return
        try:
            self._client.chat_delete(channel=self._channel, ts=handle)
        except Exception as e:
            logger.warning("[Slack] メッセージの削除に失敗しました: %s", e)
