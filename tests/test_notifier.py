from unittest.mock import MagicMock, patch

from services.notifier import ConsoleNotifier, SlackNotifier, render_message
from store.events import NotificationEvent, NotificationKind, Operation


def test_render_message_with_operation():
    event = NotificationEvent(NotificationKind.PROGRESS, "従業員API", Operation.CREATE, message="山田 太郎")
    assert render_message(event) == "⏳ 従業員API：作成中です（山田 太郎）"


def test_render_message_without_operation():
    event = NotificationEvent(NotificationKind.UNAVAILABLE, "部署API")
    assert render_message(event) == "⚠️ 機能が利用できません：部署API"


def test_console_notifier_send():
    """ConsoleNotifierがメッセージを出力すること"""
    notifier = ConsoleNotifier()
    with patch("builtins.print") as mock_print:
        result = notifier.send("テストメッセージ")
    assert result is True
    mock_print.assert_called_once()


def test_console_notifier_handle_routes_errors(capsys):
    """失敗系の通知は標準エラーに出すこと"""
    notifier = ConsoleNotifier()

    first = notifier.handle(NotificationEvent(NotificationKind.RESTORED, "勤怠API"))
    second = notifier.handle(
        NotificationEvent(NotificationKind.SYNC_FAILED, "勤怠API", message="Service Unavailable")
    )

    assert first != second
    captured = capsys.readouterr()
    assert "[HR通知] ✅ 機能が復旧しました：勤怠API" in captured.out
    assert "[HRエラー] ❌ 勤怠API：同期できませんでした（エラー: Service Unavailable）" in captured.err


def test_slack_notifier_send_success():
    """SlackNotifierが送信したメッセージのtsを返すこと"""
    mock_client = MagicMock()
    mock_client.chat_postMessage.return_value = {"ok": True, "ts": "1700000000.000100"}

    notifier = SlackNotifier(token="xoxb-test", channel="C12345")
    notifier._client = mock_client

    result = notifier.send("テスト通知")
    assert result == "1700000000.000100"
    mock_client.chat_postMessage.assert_called_once_with(channel="C12345", text="テスト通知")


def test_slack_notifier_send_failure():
    """Slack API失敗時にNoneを返すこと"""
    mock_client = MagicMock()
    mock_client.chat_postMessage.side_effect = Exception("API Error")

    notifier = SlackNotifier(token="xoxb-test", channel="C12345")
    notifier._client = mock_client

    assert notifier.send("テスト通知") is None


def test_slack_notifier_handle_and_dismiss():
    """進行中の通知を投稿し、そのtsで取り消せること"""
    mock_client = MagicMock()
    mock_client.chat_postMessage.return_value = {"ok": True, "ts": "1700000000.000200"}
    notifier = SlackNotifier(token="xoxb-test", channel="C12345")
    notifier._client = mock_client

    handle = notifier.handle(NotificationEvent(NotificationKind.PROGRESS, "API", Operation.RECONNECT))
    notifier.dismiss(handle)

    mock_client.chat_postMessage.assert_called_once_with(
        channel="C12345", text="⏳ APIへの再接続を試みています"
    )
    mock_client.chat_delete.assert_called_once_with(channel="C12345", ts="1700000000.000200")


def test_slack_notifier_fallback():
    """トークンがない場合はコンソールに出力すること"""
    notifier = SlackNotifier(token="", channel="")
    with patch("builtins.print") as mock_print:
        handle = notifier.handle(NotificationEvent(NotificationKind.RESTORED, "部署API"))
        notifier.dismiss(handle)
    assert handle == 1
    mock_print.assert_called_once()
