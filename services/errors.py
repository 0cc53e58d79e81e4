from typing import Any, Optional

DEFAULT_ERROR_MESSAGE = "エラーが発生しました"


class TransportFailure(Exception):
    """ネットワーク・HTTPエラー"""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class UnavailableCapability(Exception):
    """ヘルスチェックで到達不能と判定された機能"""

    def __init__(self, feature: str):
        super().__init__(f"{feature} は現在利用できません")
        self.feature = feature


def extract_error_message(error: Any) -> str:
    """例外やレスポンス本文から利用者向けのメッセージを取り出す"""
    if isinstance(error, str):
        return error

    payload = getattr(error, "payload", None)
    if isinstance(payload, dict):
        for key in ("message", "title"):
            if isinstance(payload.get(key), str):
                return payload[key]
    elif isinstance(payload, str) and payload:
        return payload

    if isinstance(error, Exception) and str(error):
        return str(error)

    return DEFAULT_ERROR_MESSAGE
