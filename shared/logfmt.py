"""Operator-facing log lines posted to the Discord log channel."""

from __future__ import annotations

from typing import Mapping, Optional

import discord
from discord.ext import commands

from shared.redaction import sanitize_text

__all__ = ["LOG_EMOJI", "count_label", "human_reason", "user_label", "LogTemplates"]

LOG_EMOJI = {
    "lifecycle": "📘",
    "warning": "⚠️",
    "fatal": "🛑",
}

# Discord API error codes the role commands run into.
_ROLE_API_ERRORS = {
    10007: "Unknown Member",
    10011: "Unknown Role",
    30005: "Maximum roles reached",
    50001: "Missing Access",
    50013: "Missing Permissions",
    50028: "Invalid Role",
}


def user_label(guild: Optional[discord.Guild], uid: Optional[int]) -> str:
    """Display name of ``uid`` in ``guild``, else the bare id."""

    if uid is None:
        return "unknown"
    member = guild.get_member(uid) if guild is not None else None
    name = str(getattr(member, "display_name", "") or "").strip()
    return f"{name} ({uid})" if name else str(uid)


def count_label(value: object) -> str:
    return f"{value:,}" if isinstance(value, int) else "-"


def _one_line(text: object) -> str:
    return " ".join(str(text).split())


def human_reason(error: object) -> str:
    """Short single-line description of ``error`` for the log channel."""

    if error is None:
        return "-"
    if isinstance(error, str):
        return _one_line(error) or "-"
    if isinstance(error, commands.CommandInvokeError):
        return human_reason(error.original)
    if isinstance(error, discord.HTTPException):
        label = _ROLE_API_ERRORS.get(error.code, type(error).__name__)
        detail = _one_line(error.text)
        head = f"{label} ({error.status}/{error.code})"
        return f"{head}: {detail}" if detail else head
    if isinstance(error, BaseException):
        label = type(error).__name__
        text = _one_line(error)
        reason = f"{label}: {text}" if text else label
        cause = error.__cause__
        if cause is not None and cause is not error:
            reason += f" <- {human_reason(cause)}"
        return reason
    return "-"


class LogTemplates:
    """Factory helpers for humanized log messages."""

    @staticmethod
    def ready(*, user: str, prefix: str, guilds: int, store: Mapping[str, object]) -> str:
        return (
            f"{LOG_EMOJI['lifecycle']} **Bot ready** — user={user} • prefix={prefix} "
            f"• guilds={count_label(guilds)} • allowed_roles={count_label(store.get('allowed_roles'))} "
            f"• aliases={count_label(store.get('aliases'))}"
        )

    @staticmethod
    def cmd_error(*, command: str, user: str, reason: str) -> str:
        return (
            f"{LOG_EMOJI['warning']} **Command error** — cmd={command or '-'} "
            f"• user={user or '-'} • reason={sanitize_text(reason) or '-'}"
        )

    @staticmethod
    def store_failure(*, command: str, reason: str) -> str:
        return (
            f"{LOG_EMOJI['fatal']} **Role registry write failed** — cmd={command or '-'} "
            f"• reason={sanitize_text(reason) or '-'} • shutting down"
        )
