import copy
import os

import yaml
from pathlib import Path

from services.http_client import DEFAULT_API_BASE_URL

DEFAULT_CONFIG = {
    "api": {
        "base_url": DEFAULT_API_BASE_URL,
        "timeout_seconds": 30,
        "health_timeout_seconds": 5,
    },
    "preferences": {
        "path": ".hr-console/preferences.yaml",
    },
    "scheduler": {
        "reconnect_interval_minutes": 5,
    },
    "slack": {
        "enabled": True,
        "notify_channel": "",
    },
    "transfers": {
        "export_dir": "exports",
    },
    "features": {
        "missing": [],
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """ベース設定にオーバーライドをマージする"""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: str = "config.yaml") -> dict:
    """YAML設定ファイルをロードし、デフォルト設定とマージして返す"""
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        return _deep_merge(DEFAULT_CONFIG, user_config)
    return _deep_merge(DEFAULT_CONFIG, {})


def resolve_base_url(config: dict, stored: str = None) -> str:
    """保存済みの設定 > 環境変数 HR_API_BASE_URL > 設定ファイル の順で決める"""
    return stored or os.getenv("HR_API_BASE_URL") or config["api"]["base_url"]
