"""Validation pipeline behind the self-role commands.

Each public coroutine on :class:`RoleGuard` runs its checks in order and stops
at the first failure. A failure reacts with ❌ on the invoking message, replies
with the reason, schedules that reply for deletion and raises
:class:`RoleRequestRejected` so the dispatcher can log the outcome. Success is
signalled by the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, NoReturn, Optional

import discord
from discord.ext import commands

from .listing import build_listing_embed, role_lines
from .store import RoleRegistry

if TYPE_CHECKING:
    from modules.common.runtime import Scheduler

log = logging.getLogger("selfroles.guard")

OK_EMOJI = "✅"
REJECT_EMOJI = "❌"

NOT_IN_GUILD = "Not in a guild?"
ROLE_NOT_FOUND = "Role not found"
NOT_ALLOWED = "Not an allowed role"
ALREADY_HAS_ROLE = "You already have this role"
LACKS_ROLE = "You don't have this role"
SET_FAILED = "Couldn't set role"
REMOVE_FAILED = "Couldn't remove role"
CREATE_FAILED = "Couldn't create role"
NAME_TAKEN = "A role with that name already exists"


class RoleRequestRejected(commands.CommandError):
    """Raised after a rejection has been signalled back to the user."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"rejected: {reason}")


async def delete_later(message: discord.Message, delay: float) -> None:
    await asyncio.sleep(delay)
    try:
        await message.delete()
    except discord.HTTPException:
        log.warning(
            "failed to delete rejection message",
            exc_info=True,
            extra={"message_id": getattr(message, "id", None)},
        )


async def signal_rejection(
    ctx: commands.Context,
    reason: str,
    *,
    scheduler: "Scheduler",
    delete_after: float,
) -> None:
    """React ❌, reply with ``reason`` and schedule the reply for deletion."""

    try:
        await ctx.message.add_reaction(REJECT_EMOJI)
    except discord.HTTPException:
        log.warning("reject reaction failed", exc_info=True, extra={"reason": reason})
    response = await ctx.reply(reason, mention_author=False)
    if response is not None:
        scheduler.spawn(
            delete_later(response, delete_after),
            name="selfroles_reject_cleanup",
        )


def _author_label(ctx: commands.Context) -> str:
    author = getattr(ctx, "author", None)
    return str(getattr(author, "name", None) or getattr(author, "id", "unknown"))


class RoleGuard:
    """Per-invocation access checks bound to one command context."""

    def __init__(
        self,
        ctx: commands.Context,
        registry: RoleRegistry,
        *,
        scheduler: "Scheduler",
        delete_after: float = 5.0,
    ) -> None:
        self.ctx = ctx
        self.registry = registry
        self.scheduler = scheduler
        self.delete_after = delete_after

    # ----------------------------------------------------------------- signals

    async def reject(self, reason: str) -> NoReturn:
        await signal_rejection(
            self.ctx, reason, scheduler=self.scheduler, delete_after=self.delete_after
        )
        raise RoleRequestRejected(reason)

    # ------------------------------------------------------------------ lookups

    async def guild_or_reject(self) -> discord.Guild:
        guild = self.ctx.guild
        if guild is None:
            await self.reject(NOT_IN_GUILD)
        return guild

    def lookup_role(self, guild: discord.Guild, name: str) -> Optional[discord.Role]:
        """Resolve ``name`` as an alias first, then as an exact role name."""

        role_id = self.registry.resolve_alias(name)
        if role_id is not None:
            role = guild.get_role(role_id)
            if role is not None:
                return role
        return discord.utils.get(guild.roles, name=name)

    async def role_or_reject(self, guild: discord.Guild, name: str) -> discord.Role:
        role = self.lookup_role(guild, name)
        if role is None:
            await self.reject(ROLE_NOT_FOUND)
        return role

    async def named_role_or_reject(self, guild: discord.Guild, name: str) -> discord.Role:
        role = discord.utils.get(guild.roles, name=name)
        if role is None:
            await self.reject(ROLE_NOT_FOUND)
        return role

    async def assert_role_allowed(self, role: discord.Role) -> None:
        if not self.registry.is_allowed(role.id):
            await self.reject(NOT_ALLOWED)

    async def _member(self, guild: discord.Guild, failure: str) -> Any:
        author = self.ctx.author
        if hasattr(author, "add_roles"):
            return author
        member = guild.get_member(author.id)
        if member is None:
            try:
                member = await guild.fetch_member(author.id)
            except discord.HTTPException:
                log.warning("member fetch failed", exc_info=True, extra={"user": author.id})
                await self.reject(failure)
        return member

    @staticmethod
    def _holds(member: Any, role: discord.Role) -> bool:
        return any(held.id == role.id for held in getattr(member, "roles", ()))

    # ----------------------------------------------------------------- handlers

    async def list_roles(self) -> None:
        log.debug("listing roles", extra={"author": _author_label(self.ctx)})
        guild = await self.guild_or_reject()
        lines = role_lines(guild, self.registry.get_allowed_roles(), self.registry.get_aliases())
        await self.ctx.send(embed=build_listing_embed(lines))

    async def add_role(self, name: str) -> None:
        log.debug("adding role", extra={"author": _author_label(self.ctx), "role": name})
        guild = await self.guild_or_reject()
        role = await self.role_or_reject(guild, name)
        await self.assert_role_allowed(role)

        member = await self._member(guild, SET_FAILED)
        if self._holds(member, role):
            await self.reject(ALREADY_HAS_ROLE)

        try:
            await member.add_roles(role, reason="self-assigned role")
        except discord.HTTPException:
            log.warning("role grant failed", exc_info=True, extra={"role_id": role.id})
            await self.reject(SET_FAILED)

    async def remove_role(self, name: str) -> None:
        log.debug("removing role", extra={"author": _author_label(self.ctx), "role": name})
        guild = await self.guild_or_reject()
        role = await self.role_or_reject(guild, name)
        await self.assert_role_allowed(role)

        member = await self._member(guild, REMOVE_FAILED)
        if not self._holds(member, role):
            await self.reject(LACKS_ROLE)

        try:
            await member.remove_roles(role, reason="self-removed role")
        except discord.HTTPException:
            log.warning("role revoke failed", exc_info=True, extra={"role_id": role.id})
            await self.reject(REMOVE_FAILED)

    async def create_role(self, name: str) -> None:
        log.debug("creating role", extra={"author": _author_label(self.ctx), "role": name})
        guild = await self.guild_or_reject()
        if discord.utils.get(guild.roles, name=name) is not None:
            await self.reject(NAME_TAKEN)

        try:
            role = await guild.create_role(name=name, reason=f"created by {_author_label(self.ctx)}")
        except discord.HTTPException:
            log.warning("role create failed", exc_info=True, extra={"role": name})
            await self.reject(CREATE_FAILED)

        self.registry.add_role(role.id)

    async def alias_role(self, name: str, alias: str) -> None:
        log.debug(
            "aliasing role",
            extra={"author": _author_label(self.ctx), "role": name, "alias": alias},
        )
        guild = await self.guild_or_reject()
        role = await self.named_role_or_reject(guild, name)
        if not self.registry.is_allowed(role.id):
            await self.reject(
                f"'{role.name}' is not an allowed role (aliases are only possible for allowed roles)"
            )
        self.registry.add_alias(role.id, alias)

    async def remove_alias(self, alias: str) -> None:
        log.debug("removing alias", extra={"author": _author_label(self.ctx), "alias": alias})
        if not self.registry.has_alias(alias):
            await self.reject(f"There's no alias called '{alias}'")
        self.registry.remove_alias(alias)

    async def allow_role(self, name: str) -> None:
        log.debug("allowing role", extra={"author": _author_label(self.ctx), "role": name})
        guild = await self.guild_or_reject()
        role = await self.named_role_or_reject(guild, name)
        self.registry.add_role(role.id)

    async def deny_role(self, name: str) -> None:
        log.debug("denying role", extra={"author": _author_label(self.ctx), "role": name})
        guild = await self.guild_or_reject()
        role = await self.named_role_or_reject(guild, name)
        await self.assert_role_allowed(role)
        self.registry.remove_role(role.id)


__all__ = [
    "OK_EMOJI",
    "REJECT_EMOJI",
    "RoleGuard",
    "RoleRequestRejected",
    "delete_later",
    "signal_rejection",
]
