# schemas/decode.py
"""サーバー応答（型なし）をスキーマに沿ってデコードする検証レイヤ"""
import logging
from functools import lru_cache
from typing import Any, get_origin

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class DecodeFailure(Exception):
    """ペイロードがスキーマに違反している場合のエラー"""

    def __init__(self, context: str, schema_name: str, payload: Any, errors: list = None):
        self.context = context
        self.schema_name = schema_name
        self.payload = payload
        self.errors = errors or []
        super().__init__(
            f"{context} で受信したデータが {schema_name} の契約を満たしていません"
        )


@lru_cache(maxsize=None)
def _adapter(schema) -> TypeAdapter:
    return TypeAdapter(schema)


def schema_name(schema) -> str:
    if get_origin(schema) is not None:
        return repr(schema)
    return getattr(schema, "__name__", None) or repr(schema)


def _expects_sequence(schema) -> bool:
    return get_origin(schema) in (list, tuple)


def _is_blank(item: Any) -> bool:
    return item is None or (isinstance(item, dict) and not item)


def decode(schema, raw: Any, context: str) -> Any:
    """rawをschemaで検証して返す

    要素がすべて空（null / 空オブジェクト）の配列は、検証せずに空リストとして扱う。
    検証に失敗した場合はDecodeFailureを送出する。部分的に正しいデータは返さない。
    """
    if _expects_sequence(schema) and isinstance(raw, list) and all(_is_blank(item) for item in raw):
        logger.info("[DECODE][%s] 空のコレクションを受信したため検証を省略します", context)
        return []

    adapter = _adapter(schema)
    try:
        parsed = adapter.validate_python(raw)
    except ValidationError as exc:
        logger.error("[DECODE][%s] %s", context, exc.errors(include_url=False))
        raise DecodeFailure(context, schema_name(schema), raw, exc.errors(include_url=False)) from exc

    # デフォルト値の補完や型の強制変換は許容する（診断用にログだけ残す）
    if adapter.dump_python(parsed, mode="json", by_alias=True) != raw:
        logger.debug("[DECODE][%s] 検証後にデータが調整されました", context)

    return parsed
