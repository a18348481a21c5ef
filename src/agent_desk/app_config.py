from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from agent_desk.api_client import DEFAULT_BASE_URL

API_URL_ENV_VAR = "AGENT_DESK_API_URL"


@dataclass
class AppConfig:
    api_base_url: str
    request_timeout_seconds: float
    screenshot_interval_seconds: float
    status_interval_seconds: float
    echo_correlation: bool
    auto_select_first_session: bool
    log_level: str
    log_consumers: list | None


def load_json_config(path: Path | None = None) -> dict:
    config_path = path or Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def parse_app_config(config: dict, env: dict[str, str] | None = None) -> AppConfig:
    environ = os.environ if env is None else env
    base_url = environ.get(API_URL_ENV_VAR) or config.get("ApiBaseUrl") or DEFAULT_BASE_URL
    return AppConfig(
        api_base_url=str(base_url).strip().rstrip("/"),
        request_timeout_seconds=float(config.get("RequestTimeoutSeconds", 30.0)),
        screenshot_interval_seconds=float(config.get("ScreenshotIntervalSeconds", 5.0)),
        status_interval_seconds=float(config.get("StatusIntervalSeconds", 30.0)),
        echo_correlation=_to_bool(config.get("EchoCorrelation", True), default=True),
        auto_select_first_session=_to_bool(config.get("AutoSelectFirstSession", False), default=False),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )
