import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from store.console import build_console
from store.events import NotificationKind, Operation
from store.reconnect import ReconnectOrchestrator


def _gated_store(gate: asyncio.Event, result=True):
    async def load():
        await gate.wait()
        return result

    store = MagicMock()
    store.load = AsyncMock(side_effect=load)
    return store


def _file_transfer(result=True):
    file_transfer = MagicMock()
    file_transfer.probe = AsyncMock(return_value=result)
    return file_transfer


def _kinds(sink):
    return [c.args[0].kind for c in sink.handle.call_args_list]


@pytest.mark.asyncio
async def test_reconnect_runs_all_concurrently(sink):
    """全ストアの読み込みとファイル転送のプローブを並行して開始すること"""
    gate = asyncio.Event()
    stores = [_gated_store(gate), _gated_store(gate), _gated_store(gate)]
    file_transfer = _file_transfer()
    orchestrator = ReconnectOrchestrator(stores, file_transfer, sink)

    task = asyncio.create_task(orchestrator.reconnect_all())
    for _ in range(3):
        await asyncio.sleep(0)

    assert all(store.load.await_count == 1 for store in stores)
    file_transfer.probe.assert_awaited_once()

    gate.set()
    assert await task is True
    assert _kinds(sink) == [NotificationKind.PROGRESS, NotificationKind.SUCCESS]
    assert sink.handle.call_args_list[0].args[0].operation == Operation.RECONNECT
    sink.dismiss.assert_called_once_with(1)


@pytest.mark.asyncio
async def test_reconnect_ignores_reentry(sink):
    """実行中に呼ばれた再接続は何もせずFalseを返すこと"""
    gate = asyncio.Event()
    store = _gated_store(gate)
    orchestrator = ReconnectOrchestrator([store], _file_transfer(), sink)

    first = asyncio.create_task(orchestrator.reconnect_all())
    for _ in range(3):
        await asyncio.sleep(0)
    assert orchestrator.is_reconnecting is True

    assert await orchestrator.reconnect_all() is False
    assert store.load.await_count == 1
    assert sink.handle.call_count == 1

    gate.set()
    assert await first is True
    assert orchestrator.is_reconnecting is False


@pytest.mark.asyncio
async def test_reconnect_partial_failure(sink):
    """1つでも失敗すれば失敗を通知してFalseを返すこと"""
    gate = asyncio.Event()
    gate.set()
    orchestrator = ReconnectOrchestrator(
        [_gated_store(gate), _gated_store(gate, result=False)], _file_transfer(), sink
    )

    assert await orchestrator.reconnect_all() is False
    assert _kinds(sink) == [NotificationKind.PROGRESS, NotificationKind.FAILURE]


@pytest.mark.asyncio
async def test_reconnect_unexpected_exception_is_failure(sink):
    store = MagicMock()
    store.load = AsyncMock(side_effect=RuntimeError("boom"))
    orchestrator = ReconnectOrchestrator([store], _file_transfer(), sink)

    assert await orchestrator.reconnect_all() is False
    assert orchestrator.is_reconnecting is False
    assert _kinds(sink)[-1] == NotificationKind.FAILURE


@pytest.mark.asyncio
async def test_reconnect_with_real_stores(fake_client, sink, config, employee_raw, department_raw):
    """到達できない状態から再接続すると復旧通知のあとミラーが埋まること"""
    fake_client.routes[("GET", "/employees")] = [employee_raw()]
    fake_client.routes[("GET", "/departments")] = [department_raw()]
    fake_client.routes[("GET", "/attendances")] = []
    fake_client.healthy = False
    console = build_console(fake_client, sink, config)
    assert await console.reconnect_all() is False

    fake_client.healthy = True
    assert await console.reconnect_all() is True
    for store in console.stores:
        await store.settled()

    assert [e.id for e in console.employees.mirror] == [1]
    assert [d.id for d in console.departments.mirror] == [10]
    assert fake_client.count("GET", "/employees") == 1
    assert _kinds(sink).count(NotificationKind.RESTORED) == 4
