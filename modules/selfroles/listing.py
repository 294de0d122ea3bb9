"""Rendering for the self-assignable role listing."""

from __future__ import annotations

from typing import Iterable, Mapping

import discord

EMBED_TITLE = "Available Roles"
EMPTY_TEXT = "No self-assignable roles yet."
_DESCRIPTION_LIMIT = 4096


def role_lines(
    guild: discord.Guild,
    allowed_roles: Iterable[int],
    aliases: Mapping[str, int],
) -> list[str]:
    """Return one line per allowed role that still exists in ``guild``.

    Allowed ids the guild no longer knows are skipped, along with any aliases
    pointing at them; the stored entries are left untouched.
    """

    lines: list[str] = []
    for role_id in allowed_roles:
        role = guild.get_role(role_id)
        if role is None:
            continue
        names = sorted(alias for alias, target in aliases.items() if target == role_id)
        line = f"`{role.name}`"
        if names:
            line += " - aliases: " + ",".join(f"`{name}`" for name in names)
        lines.append(line)
    return lines


def _clip(line: str, limit: int) -> str:
    if len(line) <= limit:
        return line
    return line[: limit - 1] + "…"


def _fit_description(lines: list[str]) -> str:
    """Join ``lines`` within the embed description limit.

    Lines that do not fit are counted in a trailing "+N more…" line, which is
    always left room for. A first line too long on its own is clipped.
    """

    if not lines:
        return EMPTY_TEXT
    kept: list[str] = []
    used = 0
    for index, line in enumerate(lines):
        after = len(lines) - index - 1
        reserve = len(f"\n+{after} more…") if after else 0
        if not kept:
            line = _clip(line, _DESCRIPTION_LIMIT - reserve)
        cost = len(line) + (1 if kept else 0)
        if used + cost + reserve > _DESCRIPTION_LIMIT:
            kept.append(f"+{after + 1} more…")
            break
        kept.append(line)
        used += cost
    return "\n".join(kept)


def build_listing_embed(lines: list[str]) -> discord.Embed:
    return discord.Embed(title=EMBED_TITLE, description=_fit_description(lines))


__all__ = ["EMBED_TITLE", "EMPTY_TEXT", "build_listing_embed", "role_lines"]
