import os
import tempfile

from services.config_loader import DEFAULT_CONFIG, load_config, resolve_base_url


def test_load_config_overrides():
    """設定ファイルの値がデフォルトを上書きすること"""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write("scheduler:\n  reconnect_interval_minutes: 10\n")
        f.flush()
        config = load_config(f.name)
    os.unlink(f.name)
    assert config["scheduler"]["reconnect_interval_minutes"] == 10
    assert config["api"]["timeout_seconds"] == 30


def test_load_config_nested():
    """ネストされた設定が他のキーを残したままマージされること"""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False, encoding="utf-8") as f:
        f.write(
            "api:\n"
            "  base_url: http://hr.internal:8080/api\n"
            "features:\n"
            "  missing:\n"
            "    - 給与明細\n"
        )
        f.flush()
        config = load_config(f.name)
    os.unlink(f.name)
    assert config["api"]["base_url"] == "http://hr.internal:8080/api"
    assert config["api"]["health_timeout_seconds"] == 5
    assert config["features"]["missing"] == ["給与明細"]


def test_load_config_file_not_found():
    """存在しないファイルの場合デフォルト設定を返すこと"""
    config = load_config("nonexistent.yaml")
    assert config["scheduler"]["reconnect_interval_minutes"] == 5
    assert config["api"]["base_url"] == "http://localhost:5171/api"


def test_load_config_does_not_share_defaults():
    """返した設定を書き換えてもデフォルトに影響しないこと"""
    config = load_config("nonexistent.yaml")
    config["api"]["base_url"] = "http://changed/api"
    assert DEFAULT_CONFIG["api"]["base_url"] == "http://localhost:5171/api"


def test_resolve_base_url_priority(monkeypatch):
    """保存済みの値 > 環境変数 > 設定ファイルの順で採用すること"""
    config = load_config("nonexistent.yaml")
    monkeypatch.delenv("HR_API_BASE_URL", raising=False)
    assert resolve_base_url(config) == "http://localhost:5171/api"

    monkeypatch.setenv("HR_API_BASE_URL", "http://env:9000/api")
    assert resolve_base_url(config) == "http://env:9000/api"
    assert resolve_base_url(config, "http://saved:7000/api") == "http://saved:7000/api"
