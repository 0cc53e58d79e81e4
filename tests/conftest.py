import asyncio
import itertools
from unittest.mock import MagicMock

import pytest

from services.config_loader import DEFAULT_CONFIG, _deep_merge
from services.errors import TransportFailure
from services.http_client import normalize_api_base_url


class FakeClient:
    """パスごとの応答を返すHTTPクライアントの代わり"""

    def __init__(self, routes: dict = None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str]] = []
        self.bodies: dict = {}
        self.healthy = True
        self.base_url = "http://localhost:5171/api"
        self.held: set[str] = set()
        self.gate: asyncio.Event = None

    def hold(self, *methods: str) -> asyncio.Event:
        """指定したメソッドの応答を、返したイベントがセットされるまで止める"""
        self.held.update(methods)
        self.gate = asyncio.Event()
        return self.gate

    async def _call(self, method: str, path: str, body=None):
        if method in self.held:
            await self.gate.wait()
        return self._respond(method, path, body)

    def _respond(self, method: str, path: str, body=None):
        self.calls.append((method, path))
        if body is not None:
            self.bodies[(method, path)] = body
        value = self.routes.get((method, path))
        if isinstance(value, Exception):
            raise value
        return value

    async def get(self, path):
        return await self._call("GET", path)

    async def post(self, path, body=None):
        return await self._call("POST", path, body)

    async def put(self, path, body=None):
        return await self._call("PUT", path, body)

    async def delete(self, path):
        return await self._call("DELETE", path)

    async def upload(self, path, file_path):
        return await self._call("UPLOAD", path, file_path)

    async def download(self, path):
        return await self._call("DOWNLOAD", path)

    async def check_health(self, base_url=None):
        self.calls.append(("HEALTH", "/health"))
        if not self.healthy:
            raise TransportFailure("接続できません")

    async def test_connection(self, base_url):
        self.calls.append(("TEST", base_url))
        if not self.healthy:
            raise TransportFailure("接続できません")
        return normalize_api_base_url(base_url)

    def set_base_url(self, base_url):
        self.base_url = base_url
        return base_url

    def count(self, method: str, path: str = None) -> int:
        return sum(1 for m, p in self.calls if m == method and (path is None or p == path))


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def sink():
    """handleが連番のハンドルを返す通知シンク"""
    mock = MagicMock()
    ids = itertools.count(1)
    mock.handle.side_effect = lambda event: next(ids)
    return mock


@pytest.fixture
def config(tmp_path):
    return _deep_merge(
        DEFAULT_CONFIG,
        {
            "preferences": {"path": str(tmp_path / "preferences.yaml")},
            "transfers": {"export_dir": str(tmp_path / "exports")},
        },
    )


@pytest.fixture
def employee_raw():
    def _make(**overrides):
        base = {
            "id": 1,
            "uniqueId": "EMP-001",
            "fullName": "山田 太郎",
            "gender": 1,
            "email": "taro.yamada@hr-corp.co.jp",
            "phoneNumber": "090-1234-5678",
            "address": "東京都千代田区",
            "position": "エンジニア",
            "salary": 5200000,
            "departmentName": "開発部",
            "hireDate": "2024-04-01T00:00:00Z",
        }
        base.update(overrides)
        return base

    return _make


@pytest.fixture
def department_raw():
    def _make(**overrides):
        base = {
            "id": 10,
            "createdAt": "2024-01-01T09:00:00Z",
            "updatedAt": "2024-01-02T09:00:00Z",
            "createdBy": "admin",
            "updatedBy": "admin",
            "name": "開発部",
            "code": "DEV",
            "description": "プロダクト開発",
        }
        base.update(overrides)
        return base

    return _make


@pytest.fixture
def attendance_raw():
    def _make(**overrides):
        base = {
            "id": 100,
            "date": "2026-02-20",
            "clockIn": "09:00:00",
            "clockOut": "18:00:00",
            "breakDuration": "01:00:00",
            "workedHours": 8,
            "overtimeHours": 0,
            "notes": None,
            "employeeId": 1,
            "employeeName": "山田 太郎",
        }
        base.update(overrides)
        return base

    return _make
