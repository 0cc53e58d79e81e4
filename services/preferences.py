import logging
from pathlib import Path
from typing import Optional

import yaml

from services.http_client import normalize_api_base_url

logger = logging.getLogger(__name__)

API_BASE_URL_KEY = "api_base_url"


class PreferenceStore:
    """再起動後も保持するAPIベースURLの設定（YAMLファイル）"""

    def __init__(self, path: str = ".hr-console/preferences.yaml"):
        self._path = Path(path)

    def load(self) -> Optional[str]:
        """保存済みのURLを返す（不正な値は削除してNone）"""
        if not self._path.exists():
            return None

        with open(self._path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        stored = data.get(API_BASE_URL_KEY) if isinstance(data, dict) else None
        if not stored:
            return None
        try:
            return normalize_api_base_url(str(stored))
        except ValueError:
            logger.warning("[設定] 保存されたAPIのURLが不正なため削除します: %s", stored)
            self.reset()
            return None

    def save(self, url: str) -> str:
        normalized = normalize_api_base_url(url)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            yaml.safe_dump({API_BASE_URL_KEY: normalized}, f, allow_unicode=True)
        return normalized

    def reset(self) -> None:
        self._path.unlink(missing_ok=True)
