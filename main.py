"""HR管理コンソール 同期コア - エントリーポイント"""
import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from schedulers.scheduler import ReconnectScheduler
from services.config_loader import load_config, resolve_base_url
from services.errors import TransportFailure, extract_error_message
from services.http_client import HttpClient
from services.notifier import ConsoleNotifier, SlackNotifier
from services.preferences import PreferenceStore
from store.console import build_console
from store.state import ConsoleState, EntityKind

logger = logging.getLogger("hr_console")

TRANSFER_KINDS = [EntityKind.EMPLOYEES.value, EntityKind.DEPARTMENTS.value, EntityKind.ATTENDANCES.value]


def create_services(config: dict):
    """設定に基づいて同期コア一式を生成"""
    load_dotenv()

    preferences = PreferenceStore(config["preferences"]["path"])
    state = ConsoleState()

    api_config = config["api"]
    client = HttpClient(
        base_url=resolve_base_url(config, preferences.load()),
        timeout=api_config["timeout_seconds"],
        health_timeout=api_config["health_timeout_seconds"],
        token_provider=lambda: state.session.access_token,
    )

    # Slack通知
    slack_config = config["slack"]
    slack_token = os.getenv("SLACK_BOT_TOKEN", "")
    slack_channel = os.getenv("SLACK_NOTIFY_CHANNEL", slack_config.get("notify_channel", ""))
    if slack_config["enabled"] and slack_token:
        notifier = SlackNotifier(token=slack_token, channel=slack_channel)
    else:
        notifier = ConsoleNotifier()

    console = build_console(client, notifier, config, state=state, preferences=preferences)
    return console, notifier


def _login(console) -> bool:
    token = os.getenv("HR_API_TOKEN", "")
    if not token:
        print("[HRコンソール] HR_API_TOKEN が設定されていません", file=sys.stderr)
        return False
    console.session.login(token)
    return True


def _print_summary(console) -> None:
    for store in console.stores:
        status = store.tracker.status.value
        print(f"[HRコンソール] {store.label}: {len(store.mirror)}件（{status}）")


async def run_sync(console, config: dict) -> int:
    """ログインして全ミラーを読み込み、停止されるまで定期的に再接続する"""
    if not _login(console):
        return 1
    await console.session.settled()
    _print_summary(console)

    interval = config["scheduler"]["reconnect_interval_minutes"]
    scheduler = None
    if interval > 0:
        scheduler = ReconnectScheduler(
            interval_minutes=interval,
            reconnect=console.reconnect_all,
            is_active=lambda: console.session.is_authenticated,
        )
        scheduler.start()
        print(f"[HRコンソール] {interval}分間隔で再接続を確認します")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windowsではシグナルハンドラを登録できない
            signal.signal(sig, lambda signum, frame: stop.set())

    print("[HRコンソール] Ctrl+Cで停止します")
    await stop.wait()

    print("\n[HRコンソール] 停止中...")
    if scheduler:
        scheduler.stop()
    console.reset_all()
    print("[HRコンソール] 停止しました")
    return 0


async def run_import(console, kind: str, file_path: str) -> int:
    if not _login(console):
        return 1
    await console.session.settled()
    ok = await console.file_transfer.import_file(EntityKind(kind), Path(file_path))
    await console.session.settled()
    _print_summary(console)
    return 0 if ok else 1


async def run_export(console, kind: str) -> int:
    if not _login(console):
        return 1
    await console.session.settled()
    target = await console.file_transfer.export_file(EntityKind(kind))
    if target is None:
        return 1
    print(f"[HRコンソール] {target} に保存しました")
    return 0


async def run_set_api_url(console, url: str) -> int:
    try:
        normalized = await console.set_api_base_url(url)
    except (TransportFailure, ValueError) as e:
        print(f"[HRコンソール] APIに接続できません: {extract_error_message(e)}", file=sys.stderr)
        return 1
    print(f"[HRコンソール] APIのURLを保存しました: {normalized}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hr-console", description="HR管理APIの同期コンソール")
    parser.add_argument("--config", default="config.yaml", help="設定ファイルのパス")
    parser.add_argument("--verbose", "-v", action="store_true", help="デバッグログを出力する")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("sync", help="全ミラーを読み込み、定期的に再接続する（既定）")

    export_parser = sub.add_parser("export", help="エクスポートしてファイルに保存する")
    export_parser.add_argument("resource", choices=TRANSFER_KINDS)

    import_parser = sub.add_parser("import", help="ファイルをインポートする")
    import_parser.add_argument("resource", choices=TRANSFER_KINDS)
    import_parser.add_argument("file")

    url_parser = sub.add_parser("set-api-url", help="APIのベースURLを確認して保存する")
    url_parser.add_argument("url")
    return parser


async def _dispatch(args, config: dict) -> int:
    console, notifier = create_services(config)
    try:
        if args.command == "export":
            return await run_export(console, args.resource)
        if args.command == "import":
            return await run_import(console, args.resource, args.file)
        if args.command == "set-api-url":
            return await run_set_api_url(console, args.url)
        return await run_sync(console, config)
    except Exception as e:
        logger.exception("予期しないエラーが発生しました")
        notifier.send_error(str(e))
        return 1
    finally:
        console.client.close()


def main(argv=None) -> int:
    """メイン起動処理"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config(args.config)
    return asyncio.run(_dispatch(args, config))


if __name__ == "__main__":
    sys.exit(main())
