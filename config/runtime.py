from __future__ import annotations

# config/runtime.py
import os


def get_port(default: int = 10000) -> int:
    """
    Returns the port for the aiohttp health server.
    Hosting platforms provide $PORT; locally we fall back to 10000.
    """
    try:
        return int(os.getenv("PORT", str(default)))
    except ValueError:
        return default


def get_env_name(default: str = "dev") -> str:
    return os.getenv("ENV_NAME", default)


def get_bot_name(default: str = "SelfRoleBot") -> str:
    return os.getenv("BOT_NAME", default)


def get_command_prefix(default: str = "~") -> str:
    value = os.getenv("COMMAND_PREFIX")
    if value is None or not value.strip():
        return default
    return value.strip()


def get_role_store_path(default: str = "data/config.json") -> str:
    """Registry file path, relative paths resolve against the working directory."""

    value = (os.getenv("ROLE_STORE_PATH") or "").strip()
    return value or default
