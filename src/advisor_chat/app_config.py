from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_ENDPOINT_URL = "https://web-production-2fc6.up.railway.app/chat"
ENDPOINT_ENV_VAR = "ADVISOR_CHAT_ENDPOINT_URL"
USER_ID_ENV_VAR = "ADVISOR_CHAT_USER_ID"


@dataclass
class RuntimeEnv:
    endpoint_url: str | None
    user_id: str | None


@dataclass
class AppConfig:
    endpoint_url: str
    user_id: str
    stream_delay_ms: int
    request_timeout_seconds: float | None
    max_retries: int
    storage_db_path: str
    reachability_probe_enabled: bool
    reachability_interval_seconds: float
    speech_timeout_seconds: float
    mcp_server_configs: dict
    log_level: str
    log_consumers: list | None

    def with_env(self, env: RuntimeEnv) -> AppConfig:
        if env.endpoint_url:
            self.endpoint_url = env.endpoint_url
        if env.user_id:
            self.user_id = env.user_id
        return self


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


def _to_optional_float(value: object) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def parse_app_config(config: dict) -> AppConfig:
    return AppConfig(
        endpoint_url=str(config.get("EndpointUrl", DEFAULT_ENDPOINT_URL)).strip(),
        user_id=str(config.get("UserId", "default_user")).strip(),
        stream_delay_ms=max(0, int(config.get("StreamDelayMs", 50))),
        request_timeout_seconds=_to_optional_float(config.get("RequestTimeoutSeconds")),
        max_retries=max(0, int(config.get("MaxRetries", 0))),
        storage_db_path=str(config.get("StorageDbPath", ".advisor_chat/storage.db")),
        reachability_probe_enabled=_to_bool(config.get("ReachabilityProbeEnabled", True), default=True),
        reachability_interval_seconds=float(config.get("ReachabilityIntervalSeconds", 15)),
        speech_timeout_seconds=float(config.get("SpeechTimeoutSeconds", 30)),
        mcp_server_configs=config.get("McpServers", {}),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        endpoint_url=os.environ.get(ENDPOINT_ENV_VAR, "").strip() or None,
        user_id=os.environ.get(USER_ID_ENV_VAR, "").strip() or None,
    )
