import copy

import yaml
from pathlib import Path

DEFAULT_CONFIG = {
    "tenant": {
        "hostname": "",
        "local_marker": "localhost",
        "hosting_domains": ["onrender.com", "vercel.app", "netlify.app"],
    },
    "scanner": {
        "enabled": True,
        "camera_index": 0,
        "interval_ms": 2000,
        "repeat_cooldown_ms": 0,
    },
    "registry": {
        "refresh_interval_seconds": 30,
    },
    "backend": {
        "gateway": "http",
        "base_url": "http://localhost:5000/api",
        "timeout_seconds": 20,
    },
    "slack": {
        "enabled": False,
        "notify_channel": "",
    },
    "logging": {
        "level": "INFO",
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
    return copy.deepcopy(DEFAULT_CONFIG)
