"""Runtime configuration helpers for the self-role bot."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional

from config import runtime as _runtime
from shared.redaction import mask_secret, sanitize_text

__all__ = [
    "reload_config",
    "get_config_snapshot",
    "get_env_name",
    "get_bot_name",
    "get_bot_version",
    "get_command_prefix",
    "get_discord_token",
    "get_role_store_path",
    "get_reject_delete_after_sec",
    "get_log_channel_id",
    "get_log_level",
    "get_port",
    "is_health_server_enabled",
    "redact_value",
]

log = logging.getLogger("selfroles.config")

# ===== Config Schema (authoritative) =====
_REQUIRED_ENV = ("DISCORD_TOKEN",)


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or str(value).strip() == "":
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


for _name in _REQUIRED_ENV:
    _require_env(_name)

_MISSING_VALUE = "—"
_INT_RE = re.compile(r"\d+")

_log_channel_warning_emitted = False

_CONFIG: Dict[str, object] = {}

_SECRET_KEYS = {"DISCORD_TOKEN"}


def _redact_value(key: str, value: object) -> str:
    if value in (None, "", [], (), {}):
        return _MISSING_VALUE
    text = str(value).strip()
    if not text:
        return _MISSING_VALUE
    if key.upper() in _SECRET_KEYS:
        return mask_secret(text)
    return str(sanitize_text(text))


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _first_int(raw: str | None) -> Optional[int]:
    """Pull the first run of digits, so "<#123>" and "123" both parse."""

    match = _INT_RE.search(raw or "")
    return int(match.group(0)) if match else None


def _refresh_log_channel() -> Optional[int]:
    """Read LOG_CHANNEL_ID and warn once while it stays unset."""

    global _log_channel_warning_emitted

    channel_id = _first_int(os.getenv("LOG_CHANNEL_ID"))
    if channel_id is None:
        if not _log_channel_warning_emitted:
            log.warning(
                "Log channel disabled; set LOG_CHANNEL_ID to enable Discord log posting."
            )
            _log_channel_warning_emitted = True
    else:
        _log_channel_warning_emitted = False
    return channel_id


def _int_env(
    key: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Parse an optional integer environment variable defensively."""

    raw = os.getenv(key)
    if raw is None:
        return default

    text = str(raw).strip()
    if not text:
        return default

    try:
        value = int(text)
    except ValueError:
        log.warning("config: %s='%s' invalid; using default %s", key, text, default)
        return default

    if min_value is not None and value < min_value:
        log.warning("config: %s=%s < min %s; clamping", key, value, min_value)
        value = min_value

    if max_value is not None and value > max_value:
        log.warning("config: %s=%s > max %s; clamping", key, value, max_value)
        value = max_value

    return value


def _log_snapshot(snapshot: Dict[str, object]) -> None:
    redacted = {key: _redact_value(key, value) for key, value in snapshot.items()}
    log.info("config loaded", extra={"config": redacted})


def _load_config() -> Dict[str, object]:
    store_path = Path(_runtime.get_role_store_path())
    if not store_path.is_absolute():
        store_path = Path.cwd() / store_path

    return {
        "PORT": _runtime.get_port(),
        "BOT_NAME": _runtime.get_bot_name(),
        "ENV_NAME": _runtime.get_env_name(),
        "BOT_VERSION": os.getenv("BOT_VERSION", "dev"),
        "DISCORD_TOKEN": os.getenv("DISCORD_TOKEN", ""),
        "COMMAND_PREFIX": _runtime.get_command_prefix(),
        "ROLE_STORE_PATH": str(store_path),
        "REJECT_DELETE_AFTER_SEC": _int_env(
            "REJECT_DELETE_AFTER_SEC", 5, min_value=1, max_value=60
        ),
        "LOG_CHANNEL_ID": _refresh_log_channel(),
        "LOG_LEVEL": (os.getenv("LOG_LEVEL") or "INFO").strip().upper() or "INFO",
        "ENABLE_HEALTH_SERVER": _env_bool("ENABLE_HEALTH_SERVER", True),
    }


def reload_config() -> Dict[str, object]:
    """Reload configuration from environment and return a snapshot."""

    for _name in _REQUIRED_ENV:
        _require_env(_name)

    snapshot = _load_config()

    global _CONFIG
    _CONFIG = snapshot
    _log_snapshot(snapshot)
    return dict(_CONFIG)


reload_config()


def get_config_snapshot() -> Dict[str, object]:
    """Return a shallow copy of the cached config values."""

    return dict(_CONFIG)


def _str_value(key: str, default: str) -> str:
    value = _CONFIG.get(key)
    return value if isinstance(value, str) and value else default


def get_env_name(default: str = "dev") -> str:
    return _str_value("ENV_NAME", default)


def get_bot_name(default: str = "SelfRoleBot") -> str:
    return _str_value("BOT_NAME", default)


def get_bot_version(default: str = "dev") -> str:
    return _str_value("BOT_VERSION", default)


def get_command_prefix(default: str = "~") -> str:
    return _str_value("COMMAND_PREFIX", default)


def get_discord_token() -> str:
    return _str_value("DISCORD_TOKEN", "")


def get_role_store_path() -> str:
    return _str_value("ROLE_STORE_PATH", str(Path.cwd() / "data" / "config.json"))


def get_reject_delete_after_sec(default: int = 5) -> int:
    value = _CONFIG.get("REJECT_DELETE_AFTER_SEC")
    return value if isinstance(value, int) and value > 0 else default


def get_log_channel_id() -> Optional[int]:
    value = _CONFIG.get("LOG_CHANNEL_ID")
    return value if isinstance(value, int) and value > 0 else None


def get_log_level(default: str = "INFO") -> str:
    return _str_value("LOG_LEVEL", default)


def get_port(default: int = 10000) -> int:
    value = _CONFIG.get("PORT")
    return value if isinstance(value, int) else default


def is_health_server_enabled() -> bool:
    return bool(_CONFIG.get("ENABLE_HEALTH_SERVER", True))


def redact_value(key: str, value: object) -> str:
    return _redact_value(key, value)
