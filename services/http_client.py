# services/http_client.py
import asyncio
import logging
import re
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import requests

from services.errors import TransportFailure

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:5171/api"

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*://")


def normalize_api_base_url(url: str) -> str:
    """APIのベースURLを正規化する（スキーム補完・末尾スラッシュ除去）"""
    trimmed = (url or "").strip()
    if not trimmed:
        raise ValueError("APIのURLを空にすることはできません")

    if not _SCHEME_RE.match(trimmed):
        trimmed = f"http://{trimmed}"

    try:
        parts = urlsplit(trimmed)
        parts.port  # ポート番号の検証
    except ValueError as e:
        raise ValueError("指定されたURLが不正です") from e
    if not parts.netloc or not parts.hostname:
        raise ValueError("指定されたURLが不正です")

    path = parts.path.rstrip("/")
    return f"{parts.scheme}://{parts.netloc}{path}"


class HttpClient:
    """requestsによるHTTPトランスポート

    ブロッキングI/Oはasyncio.to_threadで実行し、呼び出し側からは
    コルーチンとして扱えるようにする。
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 30,
        health_timeout: float = 5,
        token_provider: Callable[[], Optional[str]] = None,
        session: requests.Session = None,
    ):
        self._base_url = normalize_api_base_url(base_url)
        self._timeout = timeout
        self._health_timeout = health_timeout
        self._token_provider = token_provider or (lambda: None)
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_base_url(self, base_url: str) -> str:
        self._base_url = normalize_api_base_url(base_url)
        return self._base_url

    def _headers(self) -> dict:
        token = self._token_provider()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            response = self._session.request(
                method, url, headers=headers, timeout=kwargs.pop("timeout", self._timeout), **kwargs
            )
            response.raise_for_status()
            return response
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error("[HTTP] %s %s -> %s", method, url, status)
            if status == 401:
                logger.warning("[HTTP] 認証されていません（再ログインが必要です）")
            raise TransportFailure(str(e), status_code=status, payload=_body(e.response)) from e
        except requests.RequestException as e:
            logger.error("[HTTP] %s %s -> %s", method, url, e)
            raise TransportFailure(str(e)) from e

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await asyncio.to_thread(self._send, method, path, **kwargs)
        return _body(response)

    async def get(self, path: str) -> Any:
        return await self._request("GET", path)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self._request("POST", path, json=body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self._request("PUT", path, json=body)

    async def delete(self, path: str) -> Any:
        return await self._request("DELETE", path)

    async def upload(self, path: str, file_path: Path) -> Any:
        """multipart/form-dataでファイルを送信する（フィールド名は file）"""
        file_path = Path(file_path)
        content = await asyncio.to_thread(file_path.read_bytes)
        files = {"file": (file_path.name, content)}
        return await self._request("POST", path, files=files)

    async def download(self, path: str) -> bytes:
        response = await asyncio.to_thread(self._send, "GET", path)
        return response.content

    def _ping_health(self, base_url: str) -> None:
        try:
            response = self._session.get(f"{base_url}/health", timeout=self._health_timeout)
        except requests.Timeout as e:
            raise TransportFailure("接続がタイムアウトしました") from e
        except requests.RequestException as e:
            raise TransportFailure(str(e)) from e
        if response.status_code >= 400:
            raise TransportFailure(
                f"サーバーがステータス {response.status_code} を返しました",
                status_code=response.status_code,
            )

    async def check_health(self, base_url: str = None) -> None:
        """GET /health（一定時間でタイムアウト）。到達できなければTransportFailure"""
        normalized = normalize_api_base_url(base_url or self._base_url)
        await asyncio.to_thread(self._ping_health, normalized)

    async def test_connection(self, base_url: str) -> str:
        normalized = normalize_api_base_url(base_url)
        await asyncio.to_thread(self._ping_health, normalized)
        return normalized

    def close(self) -> None:
        self._session.close()


def _body(response: Optional[requests.Response]) -> Any:
    if response is None or not response.content:
        return None
    content_type = response.headers.get("Content-Type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text
